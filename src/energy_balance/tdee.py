"""
TDEE Combinator.

Total Daily Energy Expenditure = BMR + NEAT + Active. Live days are a
combine-latest over a pushed BMR stream and polled NEAT/Active streams;
historical days query each component once. Unavailable components
contribute 0.0, so a BMR-only or BMR+NEAT total is still produced.
"""

import asyncio
import logging
from contextlib import aclosing
from dataclasses import dataclass
from datetime import date
from typing import AsyncIterator, Dict, Optional

from .bmr import bmr_reading
from .calculators import ActiveCalculator, NeatCalculator
from .clock import DayClock
from .config import Settings, get_settings
from .results import Component, ComponentReading
from .sources import ActivityProvider, ProfileStore, current_profile
from .streams import combine_latest, poll

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TdeeSnapshot:
    """The three expenditure readings a TDEE total was built from."""

    bmr: ComponentReading
    neat: ComponentReading
    active: ComponentReading

    @property
    def total(self) -> float:
        return self.bmr.kcal + self.neat.kcal + self.active.kcal

    @classmethod
    def from_readings(
        cls, readings: Dict[Component, ComponentReading]
    ) -> "TdeeSnapshot":
        return cls(
            bmr=readings[Component.BMR],
            neat=readings[Component.NEAT],
            active=readings[Component.ACTIVE],
        )


class TDEECombinator:
    """Combines BMR, NEAT and Active readings into a running TDEE."""

    def __init__(
        self,
        profile_store: ProfileStore,
        provider: ActivityProvider,
        clock: Optional[DayClock] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.profile_store = profile_store
        self.clock = clock or DayClock(tz=self.settings.zone)
        self.neat_calculator = NeatCalculator(provider)
        self.active_calculator = ActiveCalculator(provider)

    async def bmr_stream(self, day: date) -> AsyncIterator[ComponentReading]:
        """BMR for day, re-emitted immediately on every profile change."""
        profiles = self.profile_store.observe_profile()
        try:
            async for profile in profiles:
                yield bmr_reading(profile, day)
        finally:
            await profiles.aclose()

    def component_streams(
        self, day: date
    ) -> Dict[Component, AsyncIterator[ComponentReading]]:
        """Live streams for each expenditure component of day."""
        interval = self.settings.poll_interval_seconds
        return {
            Component.BMR: self.bmr_stream(day),
            Component.NEAT: poll(
                lambda: self.neat_calculator.calculate(self.clock.window_for(day)),
                interval,
            ),
            Component.ACTIVE: poll(
                lambda: self.active_calculator.calculate(self.clock.window_for(day)),
                interval,
            ),
        }

    async def compute_components(
        self, day: date
    ) -> Dict[Component, ComponentReading]:
        """Query each expenditure component once for day."""
        window = self.clock.window_for(day)
        profile, neat, active = await asyncio.gather(
            current_profile(self.profile_store),
            self.neat_calculator.calculate(window),
            self.active_calculator.calculate(window),
        )
        return {
            Component.BMR: bmr_reading(profile, day),
            Component.NEAT: neat,
            Component.ACTIVE: active,
        }

    async def observe(self, day: date) -> AsyncIterator[TdeeSnapshot]:
        """Re-emit TDEE whenever any component updates."""
        logger.info(f"[TDEE] Live TDEE subscription started for {day}")
        streams = self.component_streams(day)
        try:
            async with aclosing(combine_latest(streams)) as combined:
                async for readings in combined:
                    snapshot = TdeeSnapshot.from_readings(readings)
                    logger.debug(f"[TDEE] {snapshot.total:.2f} kcal for {day}")
                    yield snapshot
        finally:
            logger.info(f"[TDEE] Live TDEE subscription stopped for {day}")

    async def compute(self, day: date) -> TdeeSnapshot:
        """One-shot TDEE for day; no subscription is created."""
        snapshot = TdeeSnapshot.from_readings(await self.compute_components(day))
        logger.debug(f"[TDEE] {snapshot.total:.2f} kcal for {day} (one-shot)")
        return snapshot
