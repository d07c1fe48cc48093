"""
Energy Balance Engine.

Reactive aggregation of BMR, NEAT, active energy and food intake into a
daily energy balance, live for today and frozen for past days.
"""

from .aggregator import AggregatorMode, EnergyBalanceAggregator
from .bmr import calculate_bmr
from .calculators import (
    KCAL_PER_STEP,
    ActiveCalculator,
    CaloriesInCalculator,
    NeatCalculator,
    steps_to_kcal,
)
from .config import Settings, get_settings
from .errors import (
    DataSourceError,
    EnergyBalanceError,
    PermissionDeniedError,
    ProfileNotConfiguredError,
    ProfileValidationError,
)
from .exclusion import merge_exercise_intervals
from .models import (
    EnergyBalance,
    ExclusionWindow,
    ExerciseInterval,
    FoodIntakeRecord,
    MacroTotals,
    Sex,
    TimeWindow,
    UserProfile,
)
from .results import (
    BalanceFailure,
    BalanceMode,
    BalanceResult,
    BalanceSuccess,
    Component,
    ComponentReading,
    ComponentStatus,
)
from .sources import ActivityProvider, ProfileStore
from .stores import InMemoryActivityProvider, InMemoryProfileStore
from .streams import combine_latest, poll
from .tdee import TDEECombinator, TdeeSnapshot

__all__ = [
    "AggregatorMode",
    "EnergyBalanceAggregator",
    "calculate_bmr",
    "KCAL_PER_STEP",
    "ActiveCalculator",
    "CaloriesInCalculator",
    "NeatCalculator",
    "steps_to_kcal",
    "Settings",
    "get_settings",
    "DataSourceError",
    "EnergyBalanceError",
    "PermissionDeniedError",
    "ProfileNotConfiguredError",
    "ProfileValidationError",
    "merge_exercise_intervals",
    "EnergyBalance",
    "ExclusionWindow",
    "ExerciseInterval",
    "FoodIntakeRecord",
    "MacroTotals",
    "Sex",
    "TimeWindow",
    "UserProfile",
    "BalanceFailure",
    "BalanceMode",
    "BalanceResult",
    "BalanceSuccess",
    "Component",
    "ComponentReading",
    "ComponentStatus",
    "ActivityProvider",
    "ProfileStore",
    "InMemoryActivityProvider",
    "InMemoryProfileStore",
    "combine_latest",
    "poll",
    "TDEECombinator",
    "TdeeSnapshot",
]
