"""In-memory profile store and activity provider.

Reference implementations of the read interfaces, used for embedding the
engine without a platform backend and for testing. Both are meant to be
driven from the event loop thread.
"""
import asyncio
import logging
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional, Sequence, Set, Tuple

from .errors import PermissionDeniedError
from .models import (
    ExclusionWindow,
    ExerciseInterval,
    FoodIntakeRecord,
    TimeWindow,
    UserProfile,
)
from .sources import ActivityProvider, ProfileStore

logger = logging.getLogger(__name__)


class InMemoryProfileStore(ProfileStore):
    """Profile store pushing every change to all observers.

    New observers first receive the current snapshot (None when unset).
    """

    def __init__(self, profile: Optional[UserProfile] = None):
        """Initialize the store.

        Args:
            profile: Initial profile snapshot, or None when not configured.
        """
        self._profile = profile
        self._subscribers: list[asyncio.Queue] = []
        self._stats = {
            "total_published": 0,
            "total_subscribers": 0,
        }

    @property
    def profile(self) -> Optional[UserProfile]:
        return self._profile

    def set_profile(self, profile: Optional[UserProfile]) -> None:
        """Replace the profile snapshot and notify observers if it changed.

        Args:
            profile: New snapshot, or None to mark the profile unset.
        """
        if profile == self._profile:
            return

        self._profile = profile
        self._stats["total_published"] += 1
        for queue in self._subscribers:
            queue.put_nowait(profile)

        logger.debug(
            f"[PROFILE STORE] Published profile update to "
            f"{len(self._subscribers)} observer(s)"
        )

    def clear(self) -> None:
        """Mark the profile as not configured."""
        self.set_profile(None)

    async def observe_profile(self) -> AsyncIterator[Optional[UserProfile]]:
        queue: asyncio.Queue[Optional[UserProfile]] = asyncio.Queue()
        self._subscribers.append(queue)
        self._stats["total_subscribers"] += 1
        queue.put_nowait(self._profile)

        try:
            while True:
                yield await queue.get()
        finally:
            if queue in self._subscribers:
                self._subscribers.remove(queue)

    def get_stats(self) -> dict:
        """Get store statistics."""
        return {
            **self._stats,
            "current_subscribers": len(self._subscribers),
            "configured": self._profile is not None,
        }


class InMemoryActivityProvider(ActivityProvider):
    """
    Activity provider over in-memory step samples, sessions and meals.

    Step samples are (instant, count) pairs; a sample inside any exclusion
    window is not counted. Individual sources can be denied or made to
    fail, and every query is recorded in ``calls``.
    """

    STEPS = "steps"
    EXERCISE_SESSIONS = "exercise_sessions"
    FOOD_INTAKE = "food_intake"

    def __init__(self):
        self.step_samples: List[Tuple[datetime, int]] = []
        self.sessions: List[ExerciseInterval] = []
        self.food_records: List[FoodIntakeRecord] = []
        self.calls: List[Tuple[str, TimeWindow]] = []
        self.step_exclusions: List[List[ExclusionWindow]] = []
        self._denied: Set[str] = set()
        self._failures: Dict[str, Exception] = {}

    def add_steps(self, at: datetime, count: int) -> None:
        self.step_samples.append((at, count))

    def add_session(self, session: ExerciseInterval) -> None:
        self.sessions.append(session)

    def add_food(self, record: FoodIntakeRecord) -> None:
        self.food_records.append(record)

    def deny(self, source: str) -> None:
        """Make queries against source raise PermissionDeniedError."""
        self._denied.add(source)

    def grant(self, source: str) -> None:
        self._denied.discard(source)

    def fail(self, source: str, error: Exception) -> None:
        """Make queries against source raise error."""
        self._failures[source] = error

    def recover(self, source: str) -> None:
        self._failures.pop(source, None)

    def calls_for(self, source: str) -> List[TimeWindow]:
        return [window for name, window in self.calls if name == source]

    def _check(self, source: str, window: TimeWindow) -> None:
        self.calls.append((source, window))
        if source in self._denied:
            raise PermissionDeniedError(source)
        if source in self._failures:
            raise self._failures[source]

    async def query_step_count(
        self, window: TimeWindow, exclude: Sequence[ExclusionWindow] = ()
    ) -> int:
        self._check(self.STEPS, window)
        self.step_exclusions.append(list(exclude))
        return sum(
            count
            for at, count in self.step_samples
            if window.contains(at) and not any(w.contains(at) for w in exclude)
        )

    async def query_exercise_sessions(
        self, window: TimeWindow
    ) -> List[ExerciseInterval]:
        self._check(self.EXERCISE_SESSIONS, window)
        return [s for s in self.sessions if window.overlaps(s.start, s.end)]

    async def query_food_intake(self, window: TimeWindow) -> List[FoodIntakeRecord]:
        self._check(self.FOOD_INTAKE, window)
        return [r for r in self.food_records if window.contains(r.timestamp)]
