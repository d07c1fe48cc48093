"""
Energy Balance Aggregator.

Entry point of the engine. Combines TDEE and Calories In into the daily
energy balance, applies the live/historical date policy and the
required/optional component policy, and manages the single subscription
that feeds consumers for the currently selected date.

Policy:
- BMR is required: a missing profile fails the result with
  ProfileNotConfiguredError, an invalid one with ProfileValidationError.
- NEAT, Active and Calories In are optional: when unavailable they
  contribute 0.0 and their status is reported on the result.
- Today is live (recomputed on every upstream update, activity sources
  polled every poll_interval_seconds); past days compute once.
"""

import asyncio
import logging
from contextlib import aclosing
from dataclasses import dataclass
from datetime import date, timedelta, tzinfo
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from .calculators import CaloriesInCalculator
from .clock import Clock, DayClock
from .config import Settings, get_settings
from .models import EnergyBalance
from .results import (
    BalanceFailure,
    BalanceMode,
    BalanceResult,
    BalanceSuccess,
    Component,
    ComponentReading,
)
from .sources import ActivityProvider, ProfileStore
from .streams import combine_latest, poll
from .tdee import TDEECombinator

logger = logging.getLogger(__name__)

_CLOSED = object()


class AggregatorMode(str, Enum):
    """What the aggregator is currently doing for its consumers."""

    IDLE = "idle"
    LIVE = "live"
    HISTORICAL = "historical"


@dataclass(frozen=True)
class _Subscription:
    """Handle of the running pipeline; replaced, never mutated, on date change."""

    generation: int
    day: date
    mode: BalanceMode
    task: asyncio.Task


class EnergyBalanceAggregator:
    """
    Produces energy balance results for a selected date.

    observe_energy_balance() and compute_energy_balance() are stateless
    streams usable directly. subscribe() and the navigation methods add a
    date state machine on top: Idle -> Live(today) on first subscription,
    then Live/Historical on select_date, previous_day, next_day and
    go_to_today. Future dates are rejected. At most one pipeline runs at a
    time; it is cancelled before a new one starts and when the last
    consumer detaches.
    """

    def __init__(
        self,
        profile_store: ProfileStore,
        provider: ActivityProvider,
        clock: Optional[Clock] = None,
        tz: Optional[tzinfo] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the aggregator.

        Args:
            profile_store: Source of profile snapshots
            provider: Source of steps, exercise sessions and food intake
            clock: Returns the current timezone-aware instant (default: system)
            tz: Zone whose midnights bound a day (default from settings, else system local)
            settings: Engine settings (default from env)
        """
        self.settings = settings or get_settings()
        self.clock = DayClock(clock, tz or self.settings.zone)
        self.tdee = TDEECombinator(profile_store, provider, self.clock, self.settings)
        self.calories_in_calculator = CaloriesInCalculator(provider)

        self._selected_date: Optional[date] = None
        self._subscription: Optional[_Subscription] = None
        self._generation = 0
        self._subscribers: List[asyncio.Queue] = []
        self._latest: Optional[Tuple[int, BalanceResult]] = None
        self._nav_lock = asyncio.Lock()
        self._stats = {
            "results_published": 0,
            "subscriptions_started": 0,
            "stale_results_dropped": 0,
        }

    # ------------------------------------------------------------------
    # Stateless computation
    # ------------------------------------------------------------------

    def _mode_for(self, day: date) -> BalanceMode:
        today = self.clock.today()
        if day > today:
            raise ValueError(f"Cannot compute energy balance for future date {day}")
        return BalanceMode.LIVE if day == today else BalanceMode.HISTORICAL

    def _combine(
        self,
        day: date,
        mode: BalanceMode,
        readings: Dict[Component, ComponentReading],
    ) -> BalanceResult:
        bmr = readings[Component.BMR]
        if not bmr.available:
            logger.info(f"[AGGREGATOR] {day}: required BMR unavailable - {bmr.error}")
            return BalanceFailure(date=day, mode=mode, error=bmr.error)

        calories_in = readings[Component.CALORIES_IN]
        balance = EnergyBalance.from_components(
            bmr=bmr.kcal,
            neat=readings[Component.NEAT].kcal,
            active_calories=readings[Component.ACTIVE].kcal,
            calories_in=calories_in.kcal,
            macros=calories_in.macros,
        )
        result = BalanceSuccess(
            date=day,
            mode=mode,
            balance=balance,
            components={c: r.status for c, r in readings.items()},
        )

        degraded = result.permission_denied | result.unavailable
        if degraded:
            logger.warning(
                f"[AGGREGATOR] {day}: degraded to 0.0 for "
                f"{sorted(c.value for c in degraded)}"
            )
        logger.debug(
            f"[AGGREGATOR] {day}: tdee={balance.tdee:.2f} in={balance.calories_in:.2f} "
            f"balance={balance.deficit_surplus:.2f}"
        )
        return result

    async def compute_energy_balance(self, day: date) -> BalanceResult:
        """
        Compute the balance for day once, querying each component a single time.

        For today this is a snapshot at the current clock instant.

        Raises:
            ValueError: if day is in the future
        """
        mode = self._mode_for(day)
        window = self.clock.window_for(day)
        components, calories_in = await asyncio.gather(
            self.tdee.compute_components(day),
            self.calories_in_calculator.calculate(window),
        )
        return self._combine(
            day, mode, {**components, Component.CALORIES_IN: calories_in}
        )

    async def observe_energy_balance(self, day: date) -> AsyncIterator[BalanceResult]:
        """
        Stream balance results for day.

        Today: a new result each time any component updates, until the
        stream is closed. Past days: exactly one result, then the stream ends.

        Raises:
            ValueError: if day is in the future
        """
        mode = self._mode_for(day)
        if mode is BalanceMode.HISTORICAL:
            yield await self.compute_energy_balance(day)
            return

        streams = self.tdee.component_streams(day)
        streams[Component.CALORIES_IN] = poll(
            lambda: self.calories_in_calculator.calculate(self.clock.window_for(day)),
            self.settings.poll_interval_seconds,
        )
        async with aclosing(combine_latest(streams)) as combined:
            async for readings in combined:
                yield self._combine(day, mode, readings)

    # ------------------------------------------------------------------
    # Subscription management
    # ------------------------------------------------------------------

    def _offer(self, queue: asyncio.Queue, item: Any) -> None:
        try:
            queue.put_nowait(item)
        except asyncio.QueueFull:
            # Slow consumer: keep the newest result, drop the oldest
            queue.get_nowait()
            queue.put_nowait(item)
            logger.warning("[AGGREGATOR] Subscriber queue full, dropped oldest result")

    def _publish(self, generation: int, result: BalanceResult) -> None:
        if generation != self._generation:
            self._stats["stale_results_dropped"] += 1
            logger.debug(f"[AGGREGATOR] Dropped result from superseded generation {generation}")
            return

        self._latest = (generation, result)
        self._stats["results_published"] += 1
        for queue in self._subscribers:
            self._offer(queue, (generation, result))

    async def _run(self, day: date, mode: BalanceMode, generation: int) -> None:
        try:
            async for result in self.observe_energy_balance(day):
                self._publish(generation, result)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[AGGREGATOR] Pipeline for {day} failed: {e}")
            self._publish(generation, BalanceFailure(date=day, mode=mode, error=e))

    def _start(self, day: date) -> None:
        mode = self._mode_for(day)
        generation = self._generation
        task = asyncio.create_task(self._run(day, mode, generation))
        self._subscription = _Subscription(generation, day, mode, task)
        self._stats["subscriptions_started"] += 1
        logger.info(
            f"[AGGREGATOR] Started {mode.value} subscription for {day} "
            f"(generation {generation})"
        )

    async def _stop(self) -> None:
        subscription, self._subscription = self._subscription, None
        self._generation += 1
        if subscription is None:
            return

        subscription.task.cancel()
        await asyncio.gather(subscription.task, return_exceptions=True)
        logger.info(
            f"[AGGREGATOR] Cancelled {subscription.mode.value} subscription for "
            f"{subscription.day}"
        )

    async def subscribe(self) -> AsyncIterator[BalanceResult]:
        """
        Stream results for the selected date, following date navigation.

        The first subscriber starts the pipeline (today unless a date was
        already selected); later subscribers receive the latest result
        first. When the last subscriber leaves, the pipeline is cancelled.

        Yields:
            BalanceResult for the selected date
        """
        queue: asyncio.Queue = asyncio.Queue(
            maxsize=self.settings.subscriber_queue_size
        )
        async with self._nav_lock:
            self._subscribers.append(queue)
            if self._subscription is None:
                if self._selected_date is None:
                    self._selected_date = self.clock.today()
                self._start(self._selected_date)
            elif self._latest and self._latest[0] == self._generation:
                self._offer(queue, self._latest)

        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                generation, result = item
                if generation != self._generation:
                    continue
                yield result
        finally:
            if queue in self._subscribers:
                self._subscribers.remove(queue)
            if not self._subscribers:
                async with self._nav_lock:
                    await self._stop()

    async def close(self) -> None:
        """Cancel the pipeline, end every subscriber stream and return to idle."""
        async with self._nav_lock:
            await self._stop()
        for queue in self._subscribers:
            self._offer(queue, _CLOSED)
        logger.info("[AGGREGATOR] Closed")

    # ------------------------------------------------------------------
    # Date navigation
    # ------------------------------------------------------------------

    @property
    def selected_date(self) -> date:
        return self._selected_date or self.clock.today()

    @property
    def mode(self) -> AggregatorMode:
        if self._subscription is None:
            return AggregatorMode.IDLE
        if self._subscription.mode is BalanceMode.LIVE:
            return AggregatorMode.LIVE
        return AggregatorMode.HISTORICAL

    async def select_date(self, day: date) -> bool:
        """
        Switch consumers to day.

        The current pipeline is cancelled and awaited before the new one
        starts, so results for the old date are never delivered afterwards.

        Returns:
            False if day is in the future (nothing changes), True otherwise
        """
        if day > self.clock.today():
            logger.debug(f"[AGGREGATOR] Cannot navigate to future date {day}")
            return False

        async with self._nav_lock:
            if day == self._selected_date and self._subscription is not None:
                return True

            logger.info(f"[AGGREGATOR] Navigating to {day}")
            await self._stop()
            self._selected_date = day
            if self._subscribers:
                self._start(day)
        return True

    async def previous_day(self) -> bool:
        return await self.select_date(self.selected_date - timedelta(days=1))

    async def next_day(self) -> bool:
        """Move forward one day; a no-op returning False when already on today."""
        current = self.selected_date
        if current >= self.clock.today():
            logger.debug("[AGGREGATOR] Cannot navigate past today")
            return False
        return await self.select_date(current + timedelta(days=1))

    async def go_to_today(self) -> bool:
        return await self.select_date(self.clock.today())

    async def refresh(self) -> None:
        """Restart the pipeline for the selected date to force a fresh result."""
        async with self._nav_lock:
            await self._stop()
            if self._subscribers:
                self._start(self.selected_date)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_latest(self) -> Optional[BalanceResult]:
        """Most recent result for the current generation, if any."""
        if self._latest and self._latest[0] == self._generation:
            return self._latest[1]
        return None

    def get_status(self) -> Dict[str, Any]:
        """Get aggregator status."""
        latest = self.get_latest()
        return {
            "mode": self.mode.value,
            "selected_date": self.selected_date.isoformat(),
            "generation": self._generation,
            "subscribers": len(self._subscribers),
            "poll_interval_seconds": self.settings.poll_interval_seconds,
            "latest": latest.to_dict() if latest else None,
            **self._stats,
        }
