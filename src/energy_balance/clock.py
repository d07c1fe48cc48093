"""Injected wall clock and day-window arithmetic."""
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Callable, Optional

from .models import TimeWindow

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now().astimezone()


class DayClock:
    """
    Resolves "today" and day windows from an injected clock.

    Each day is bounded by its own local midnights, so a day on the other
    side of a daylight-saving change gets that day's UTC offset.

    Args:
        clock: Returns the current timezone-aware instant
        tz: Zone whose midnights bound a day (default: the system local zone)
    """

    def __init__(self, clock: Optional[Clock] = None, tz: Optional[tzinfo] = None):
        self._clock = clock or system_clock
        self._tz = tz

    def now(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            raise ValueError("clock must return timezone-aware datetimes")
        # astimezone(None) converts to the system local zone
        return now.astimezone(self._tz)

    def today(self) -> date:
        return self.now().date()

    def midnight(self, day: date) -> datetime:
        """Local midnight starting day, with the offset in effect on day."""
        if self._tz is not None:
            return datetime.combine(day, time.min, tzinfo=self._tz)
        return datetime.combine(day, time.min).astimezone()

    def window_for(self, day: date) -> TimeWindow:
        """Day window for day; for today it ends at the current instant."""
        window = TimeWindow(
            start=self.midnight(day), end=self.midnight(day + timedelta(days=1))
        )
        return window.up_to(self.now())
