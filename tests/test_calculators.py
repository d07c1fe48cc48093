"""
Unit tests for the NEAT, Active and Calories In calculators.

These tests verify:
1. NEAT is steps x 0.04 with exercise periods excluded
2. Denied exercise sessions fall back to the unfiltered step count
3. Permission denial is reported distinctly from zero data
4. Timeouts and source failures become UNAVAILABLE readings
5. Active energy and food intake sum over the window

Usage:
    pytest tests/test_calculators.py -v
"""
import asyncio
import pytest
from unittest.mock import AsyncMock

from conftest import at
from energy_balance.calculators import (
    KCAL_PER_STEP,
    ActiveCalculator,
    CaloriesInCalculator,
    NeatCalculator,
    steps_to_kcal,
)
from energy_balance.errors import DataSourceError, PermissionDeniedError
from energy_balance.models import (
    ExclusionWindow,
    ExerciseInterval,
    FoodIntakeRecord,
    TimeWindow,
)
from energy_balance.results import Component, ComponentStatus
from energy_balance.stores import InMemoryActivityProvider

WINDOW = TimeWindow(start=at(0), end=at(14))


class TestStepsToKcal:
    """Test the step energy constant."""

    @pytest.mark.parametrize("steps", [0, 1, 2500, 10000, 123457])
    def test_linear(self, steps):
        assert steps_to_kcal(steps) == steps * KCAL_PER_STEP

    def test_ten_thousand_steps(self):
        assert steps_to_kcal(10000) == pytest.approx(400.0)


class TestNeatCalculator:
    """Test NEAT with exercise exclusion."""

    @pytest.mark.asyncio
    async def test_no_exercise_counts_all_steps(self, provider):
        provider.add_steps(at(7), 4000)
        provider.add_steps(at(12), 6000)

        reading = await NeatCalculator(provider).calculate(WINDOW)

        assert reading.component is Component.NEAT
        assert reading.available
        assert reading.kcal == pytest.approx(400.0)
        assert provider.step_exclusions == [[]]

    @pytest.mark.asyncio
    async def test_steps_during_exercise_excluded(self, provider):
        """10,000 steps with 3,000 inside an 08:00-09:00 session -> 280 kcal."""
        provider.add_steps(at(7), 2000)
        provider.add_steps(at(8, 30), 3000)
        provider.add_steps(at(12), 5000)
        provider.add_session(ExerciseInterval(start=at(8), end=at(9), energy_kcal=450))

        reading = await NeatCalculator(provider).calculate(WINDOW)

        assert reading.kcal == pytest.approx(280.0)
        assert provider.step_exclusions == [[ExclusionWindow(start=at(8), end=at(9))]]

    @pytest.mark.asyncio
    async def test_overlapping_sessions_passed_merged(self, provider):
        provider.add_session(ExerciseInterval(start=at(8), end=at(9), energy_kcal=200))
        provider.add_session(
            ExerciseInterval(start=at(8, 30), end=at(10), energy_kcal=300)
        )

        await NeatCalculator(provider).calculate(WINDOW)

        assert provider.step_exclusions == [
            [ExclusionWindow(start=at(8), end=at(10))]
        ]

    @pytest.mark.asyncio
    async def test_denied_exercise_uses_unfiltered_steps(self, provider):
        """Without session access, steps are counted in full rather than failing."""
        provider.add_steps(at(8, 30), 3000)
        provider.add_steps(at(12), 7000)
        provider.add_session(ExerciseInterval(start=at(8), end=at(9), energy_kcal=450))
        provider.deny(InMemoryActivityProvider.EXERCISE_SESSIONS)

        reading = await NeatCalculator(provider).calculate(WINDOW)

        assert reading.available
        assert reading.kcal == pytest.approx(400.0)
        assert provider.step_exclusions == [[]]

    @pytest.mark.asyncio
    async def test_failed_exercise_uses_unfiltered_steps(self, provider):
        provider.add_steps(at(8, 30), 3000)
        provider.fail(
            InMemoryActivityProvider.EXERCISE_SESSIONS,
            DataSourceError("exercise_sessions"),
        )

        reading = await NeatCalculator(provider).calculate(WINDOW)

        assert reading.kcal == pytest.approx(120.0)

    @pytest.mark.asyncio
    async def test_zero_steps_is_data(self, provider):
        reading = await NeatCalculator(provider).calculate(WINDOW)
        assert reading.status is ComponentStatus.OK
        assert reading.kcal == 0.0

    @pytest.mark.asyncio
    async def test_steps_denied(self, provider):
        """Denied step access is PERMISSION_DENIED, not a zero reading."""
        provider.deny(InMemoryActivityProvider.STEPS)

        reading = await NeatCalculator(provider).calculate(WINDOW)

        assert reading.status is ComponentStatus.PERMISSION_DENIED
        assert reading.kcal == 0.0
        assert isinstance(reading.error, PermissionDeniedError)
        assert reading.error.source == "steps"

    @pytest.mark.asyncio
    async def test_steps_timeout(self):
        provider = AsyncMock()
        provider.query_exercise_sessions.return_value = []
        provider.query_step_count.side_effect = asyncio.TimeoutError()

        reading = await NeatCalculator(provider).calculate(WINDOW)

        assert reading.status is ComponentStatus.UNAVAILABLE
        assert isinstance(reading.error, DataSourceError)
        provider.query_step_count.assert_awaited_once_with(WINDOW, [])

    @pytest.mark.asyncio
    async def test_steps_connection_error_is_unavailable(self, provider):
        """Any provider failure on steps becomes a DataSourceError reading."""
        provider.fail(InMemoryActivityProvider.STEPS, ConnectionError("socket reset"))

        reading = await NeatCalculator(provider).calculate(WINDOW)

        assert reading.status is ComponentStatus.UNAVAILABLE
        assert isinstance(reading.error, DataSourceError)
        assert reading.error.source == "steps"
        assert isinstance(reading.error.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_sessions_os_error_uses_unfiltered_steps(self, provider):
        provider.add_steps(at(8, 30), 3000)
        provider.add_session(ExerciseInterval(start=at(8), end=at(9), energy_kcal=450))
        provider.fail(InMemoryActivityProvider.EXERCISE_SESSIONS, OSError("disk"))

        reading = await NeatCalculator(provider).calculate(WINDOW)

        assert reading.available
        assert reading.kcal == pytest.approx(120.0)

    @pytest.mark.asyncio
    async def test_session_clipped_before_exclusion(self):
        """A session running past the window end is cut at the window end."""
        provider = AsyncMock()
        provider.query_exercise_sessions.return_value = [
            ExerciseInterval(start=at(13), end=at(15), energy_kcal=300)
        ]
        provider.query_step_count.return_value = 0

        await NeatCalculator(provider).calculate(WINDOW)

        provider.query_step_count.assert_awaited_once_with(
            WINDOW, [ExclusionWindow(start=at(13), end=at(14))]
        )


class TestActiveCalculator:
    """Test active energy from exercise sessions."""

    @pytest.mark.asyncio
    async def test_sums_sessions(self, provider):
        provider.add_session(ExerciseInterval(start=at(8), end=at(9), energy_kcal=450))
        provider.add_session(
            ExerciseInterval(start=at(12), end=at(12, 30), energy_kcal=150)
        )

        reading = await ActiveCalculator(provider).calculate(WINDOW)

        assert reading.component is Component.ACTIVE
        assert reading.kcal == 600.0

    @pytest.mark.asyncio
    async def test_ignores_sessions_outside_window(self, provider):
        provider.add_session(
            ExerciseInterval(start=at(15), end=at(16), energy_kcal=450)
        )
        reading = await ActiveCalculator(provider).calculate(WINDOW)
        assert reading.available
        assert reading.kcal == 0.0

    @pytest.mark.asyncio
    async def test_denied(self, provider):
        provider.deny(InMemoryActivityProvider.EXERCISE_SESSIONS)
        reading = await ActiveCalculator(provider).calculate(WINDOW)
        assert reading.status is ComponentStatus.PERMISSION_DENIED

    @pytest.mark.asyncio
    async def test_source_error(self, provider):
        provider.fail(
            InMemoryActivityProvider.EXERCISE_SESSIONS,
            DataSourceError("exercise_sessions", "backend offline"),
        )
        reading = await ActiveCalculator(provider).calculate(WINDOW)
        assert reading.status is ComponentStatus.UNAVAILABLE
        assert str(reading.error) == "backend offline"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_unavailable(self, provider):
        provider.fail(
            InMemoryActivityProvider.EXERCISE_SESSIONS, ConnectionError("socket reset")
        )
        reading = await ActiveCalculator(provider).calculate(WINDOW)
        assert reading.status is ComponentStatus.UNAVAILABLE
        assert isinstance(reading.error, DataSourceError)


class TestCaloriesInCalculator:
    """Test calories in and macro totals."""

    @pytest.mark.asyncio
    async def test_sums_energy_and_macros(self, provider):
        provider.add_food(
            FoodIntakeRecord(
                timestamp=at(8), energy_kcal=400, protein_g=20, carbs_g=50, fat_g=10,
                name="Oatmeal",
            )
        )
        provider.add_food(
            FoodIntakeRecord(
                timestamp=at(12), energy_kcal=650, protein_g=35, carbs_g=70, fat_g=22
            )
        )

        reading = await CaloriesInCalculator(provider).calculate(WINDOW)

        assert reading.component is Component.CALORIES_IN
        assert reading.kcal == 1050.0
        assert reading.macros.protein_g == 55
        assert reading.macros.carbs_g == 120
        assert reading.macros.fat_g == 32

    @pytest.mark.asyncio
    async def test_no_meals_is_zero(self, provider):
        reading = await CaloriesInCalculator(provider).calculate(WINDOW)
        assert reading.available
        assert reading.kcal == 0.0

    @pytest.mark.asyncio
    async def test_records_after_window_end_excluded(self, provider):
        provider.add_food(FoodIntakeRecord(timestamp=at(19), energy_kcal=800))
        reading = await CaloriesInCalculator(provider).calculate(WINDOW)
        assert reading.kcal == 0.0

    @pytest.mark.asyncio
    async def test_denied(self, provider):
        provider.deny(InMemoryActivityProvider.FOOD_INTAKE)
        reading = await CaloriesInCalculator(provider).calculate(WINDOW)
        assert reading.status is ComponentStatus.PERMISSION_DENIED
        assert reading.macros is None

    @pytest.mark.asyncio
    async def test_unexpected_error_is_unavailable(self, provider):
        provider.fail(InMemoryActivityProvider.FOOD_INTAKE, ValueError("bad row"))
        reading = await CaloriesInCalculator(provider).calculate(WINDOW)
        assert reading.status is ComponentStatus.UNAVAILABLE
        assert "bad row" in str(reading.error)

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        provider = AsyncMock()
        provider.query_food_intake.side_effect = asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await CaloriesInCalculator(provider).calculate(WINDOW)
