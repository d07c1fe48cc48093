"""
Provider-backed component calculators.

Each calculator queries the activity provider once for a window and
returns a ComponentReading. Zero steps, sessions or meals are valid OK
readings of 0.0; permission denial and source failures become tagged
non-OK readings so callers can tell "grant access" from "no data yet".
"""

import asyncio
import logging
from typing import List

from .errors import DataSourceError, PermissionDeniedError
from .exclusion import clip_to_window, merge_exercise_intervals
from .models import ExerciseInterval, MacroTotals, TimeWindow
from .results import Component, ComponentReading
from .sources import ActivityProvider

logger = logging.getLogger(__name__)

# Energy per passive step (Levine, "Non-exercise activity thermogenesis", 2002)
KCAL_PER_STEP = 0.04


def steps_to_kcal(steps: int) -> float:
    """Convert a passive step count to NEAT kilocalories."""
    return steps * KCAL_PER_STEP


def _as_source_error(source: str, error: Exception) -> Exception:
    if isinstance(error, (PermissionDeniedError, DataSourceError)):
        return error
    if isinstance(error, asyncio.TimeoutError):
        wrapped = DataSourceError(source, f"{source} query timed out")
    else:
        wrapped = DataSourceError(
            source, f"{source} query failed: {type(error).__name__}: {error}"
        )
    wrapped.__cause__ = error
    return wrapped


class NeatCalculator:
    """Non-exercise activity thermogenesis from passive steps."""

    def __init__(self, provider: ActivityProvider):
        self.provider = provider

    async def _exercise_intervals(self, window: TimeWindow) -> List[ExerciseInterval]:
        try:
            sessions = await self.provider.query_exercise_sessions(window)
        except PermissionDeniedError:
            logger.warning(
                "[NEAT] Exercise sessions permission denied - "
                "counting all steps without exclusion"
            )
            return []
        except Exception as e:
            logger.warning(
                f"[NEAT] Exercise sessions unavailable ({e}) - "
                "counting all steps without exclusion"
            )
            return []
        return clip_to_window(sessions, window)

    async def calculate(self, window: TimeWindow) -> ComponentReading:
        """
        Calculate NEAT for window, excluding steps taken during exercise.

        If exercise sessions cannot be read, the unfiltered step total is
        used; overestimating NEAT is preferred to blocking the result.
        """
        exclusions = merge_exercise_intervals(await self._exercise_intervals(window))

        try:
            steps = await self.provider.query_step_count(window, exclusions)
        except Exception as e:
            error = _as_source_error("steps", e)
            logger.warning(f"[NEAT] Unavailable: {error}")
            return ComponentReading.failed(Component.NEAT, error)

        neat = steps_to_kcal(steps)
        logger.debug(
            f"[NEAT] {neat:.2f} kcal from {steps} steps "
            f"({len(exclusions)} exercise window(s) excluded)"
        )
        return ComponentReading.ok(Component.NEAT, neat)


class ActiveCalculator:
    """Active energy from recorded exercise sessions."""

    def __init__(self, provider: ActivityProvider):
        self.provider = provider

    async def calculate(self, window: TimeWindow) -> ComponentReading:
        try:
            sessions = await self.provider.query_exercise_sessions(window)
        except Exception as e:
            error = _as_source_error("exercise_sessions", e)
            logger.warning(f"[ACTIVE] Unavailable: {error}")
            return ComponentReading.failed(Component.ACTIVE, error)

        active = sum(
            s.energy_kcal for s in sessions if window.overlaps(s.start, s.end)
        )
        logger.debug(f"[ACTIVE] {active:.2f} kcal from {len(sessions)} session(s)")
        return ComponentReading.ok(Component.ACTIVE, float(active))


class CaloriesInCalculator:
    """Energy and macronutrients consumed, from food intake records."""

    def __init__(self, provider: ActivityProvider):
        self.provider = provider

    async def calculate(self, window: TimeWindow) -> ComponentReading:
        try:
            records = await self.provider.query_food_intake(window)
        except Exception as e:
            error = _as_source_error("food_intake", e)
            logger.warning(f"[CALORIES IN] Unavailable: {error}")
            return ComponentReading.failed(Component.CALORIES_IN, error)

        in_window = [r for r in records if window.contains(r.timestamp)]
        calories = sum(r.energy_kcal for r in in_window)
        macros = MacroTotals(
            protein_g=sum(r.protein_g for r in in_window),
            carbs_g=sum(r.carbs_g for r in in_window),
            fat_g=sum(r.fat_g for r in in_window),
        )

        logger.debug(
            f"[CALORIES IN] {calories:.2f} kcal from {len(in_window)} record(s)"
        )
        return ComponentReading.ok(Component.CALORIES_IN, float(calories), macros)
