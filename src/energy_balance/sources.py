"""
Read interfaces the engine is initialized with.

The engine performs no I/O of its own; everything it knows comes through a
ProfileStore and an ActivityProvider.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, List, Optional, Sequence

from .models import (
    ExclusionWindow,
    ExerciseInterval,
    FoodIntakeRecord,
    TimeWindow,
    UserProfile,
)


class ProfileStore(ABC):
    """Source of biometric profile snapshots."""

    @abstractmethod
    def observe_profile(self) -> AsyncIterator[Optional[UserProfile]]:
        """
        Stream the current profile, then every change.

        Emits None while no profile is configured.
        """


class ActivityProvider(ABC):
    """
    Source of steps, exercise sessions and food intake.

    Every query may raise PermissionDeniedError, which is distinct from an
    empty or zero result, or DataSourceError for any other failure.
    """

    @abstractmethod
    async def query_step_count(
        self, window: TimeWindow, exclude: Sequence[ExclusionWindow] = ()
    ) -> int:
        """Total passive steps in window, not counting steps inside exclude."""

    @abstractmethod
    async def query_exercise_sessions(
        self, window: TimeWindow
    ) -> List[ExerciseInterval]:
        """Exercise sessions overlapping window."""

    @abstractmethod
    async def query_food_intake(self, window: TimeWindow) -> List[FoodIntakeRecord]:
        """Food intake records logged in window."""


async def current_profile(store: ProfileStore) -> Optional[UserProfile]:
    """Take the current snapshot from a profile store without subscribing."""
    stream = store.observe_profile()
    try:
        return await stream.__anext__()
    except StopAsyncIteration:
        return None
    finally:
        await stream.aclose()
