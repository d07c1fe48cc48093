"""Pydantic models for energy balance inputs and results."""
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import ProfileValidationError

MIN_AGE_YEARS = 13
MAX_AGE_YEARS = 120
MIN_WEIGHT_KG = 30.0
MAX_WEIGHT_KG = 300.0
MIN_HEIGHT_CM = 100.0
MAX_HEIGHT_CM = 250.0


def _require_aware(value: datetime) -> datetime:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError("datetime must be timezone-aware")
    return value


class Sex(str, Enum):
    """Biological sex used by the Mifflin-St Jeor equation."""

    MALE = "male"
    FEMALE = "female"


class UserProfile(BaseModel):
    """
    Biometric snapshot read from the profile store.

    Ranges are not enforced on construction; the store owns the value and
    the BMR calculator rejects out-of-range profiles via validate_ranges().
    """

    model_config = ConfigDict(frozen=True)

    sex: Sex
    birth_date: date
    weight_kg: float
    height_cm: float

    def age_on(self, day: date) -> int:
        """Completed years of age on the given day."""
        age = day.year - self.birth_date.year
        if (day.month, day.day) < (self.birth_date.month, self.birth_date.day):
            age -= 1
        return age

    def validate_ranges(self, on: date) -> None:
        """
        Check age, weight and height against the supported ranges.

        Args:
            on: Reference date for the age check

        Raises:
            ProfileValidationError: naming the first field out of range
        """
        age = self.age_on(on)
        if not MIN_AGE_YEARS <= age <= MAX_AGE_YEARS:
            raise ProfileValidationError(
                "age", f"Age must be between {MIN_AGE_YEARS} and {MAX_AGE_YEARS}"
            )
        if not MIN_WEIGHT_KG <= self.weight_kg <= MAX_WEIGHT_KG:
            raise ProfileValidationError(
                "weight_kg",
                f"Weight must be between {MIN_WEIGHT_KG:g} and {MAX_WEIGHT_KG:g} kg",
            )
        if not MIN_HEIGHT_CM <= self.height_cm <= MAX_HEIGHT_CM:
            raise ProfileValidationError(
                "height_cm",
                f"Height must be between {MIN_HEIGHT_CM:g} and {MAX_HEIGHT_CM:g} cm",
            )


class TimeWindow(BaseModel):
    """Half-open query window [start, end)."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def check_aware(cls, value: datetime) -> datetime:
        return _require_aware(value)

    @model_validator(mode="after")
    def check_order(self) -> "TimeWindow":
        if self.end < self.start:
            raise ValueError("window end must not precede its start")
        return self

    @classmethod
    def for_day(cls, day: date, tz: tzinfo) -> "TimeWindow":
        """Closed window from local midnight of day to local midnight of day + 1."""
        return cls(
            start=datetime.combine(day, time.min, tzinfo=tz),
            end=datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz),
        )

    @classmethod
    def today(cls, now: datetime, tz: Optional[tzinfo] = None) -> "TimeWindow":
        """Advancing window from local midnight to now."""
        _require_aware(now)
        if tz is not None:
            now = now.astimezone(tz)
        return cls.for_day(now.date(), now.tzinfo).up_to(now)

    def up_to(self, instant: datetime) -> "TimeWindow":
        """Truncate the window end to instant, never past the window bounds."""
        end = min(self.end, max(self.start, instant))
        return TimeWindow(start=self.start, end=end)

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return start < self.end and end > self.start

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


class ExerciseInterval(BaseModel):
    """One recorded exercise session."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    energy_kcal: float = Field(ge=0)

    @field_validator("start", "end")
    @classmethod
    def check_aware(cls, value: datetime) -> datetime:
        return _require_aware(value)

    @model_validator(mode="after")
    def check_order(self) -> "ExerciseInterval":
        if self.end < self.start:
            raise ValueError("exercise end must not precede its start")
        return self

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


class ExclusionWindow(BaseModel):
    """Merged period whose steps are already counted as exercise energy."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


class FoodIntakeRecord(BaseModel):
    """Validated food-intake entry handed over by the meal log."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    energy_kcal: float = Field(ge=0)
    protein_g: float = Field(default=0.0, ge=0)
    carbs_g: float = Field(default=0.0, ge=0)
    fat_g: float = Field(default=0.0, ge=0)
    name: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def check_aware(cls, value: datetime) -> datetime:
        return _require_aware(value)


class MacroTotals(BaseModel):
    """Summed macronutrients in grams."""

    model_config = ConfigDict(frozen=True)

    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0


class EnergyBalance(BaseModel):
    """
    Daily energy balance, recomputed on every recombination.

    tdee = bmr + neat + active_calories
    deficit_surplus = tdee - calories_in (positive = deficit, negative = surplus)
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    bmr: float
    neat: float
    active_calories: float = Field(serialization_alias="activeCalories")
    tdee: float
    calories_in: float = Field(serialization_alias="caloriesIn")
    deficit_surplus: float = Field(serialization_alias="deficitSurplus")
    total_protein: float = Field(default=0.0, serialization_alias="totalProtein")
    total_carbs: float = Field(default=0.0, serialization_alias="totalCarbs")
    total_fat: float = Field(default=0.0, serialization_alias="totalFat")

    @classmethod
    def from_components(
        cls,
        bmr: float,
        neat: float,
        active_calories: float,
        calories_in: float,
        macros: Optional[MacroTotals] = None,
    ) -> "EnergyBalance":
        macros = macros or MacroTotals()
        tdee = bmr + neat + active_calories
        return cls(
            bmr=bmr,
            neat=neat,
            active_calories=active_calories,
            tdee=tdee,
            calories_in=calories_in,
            deficit_surplus=tdee - calories_in,
            total_protein=macros.protein_g,
            total_carbs=macros.carbs_g,
            total_fat=macros.fat_g,
        )

    @property
    def is_deficit(self) -> bool:
        return self.deficit_surplus > 0

    @property
    def formatted_deficit_surplus(self) -> str:
        """Signed display string, e.g. "-500 kcal deficit" or "+200 kcal surplus"."""
        if self.deficit_surplus > 0:
            return f"-{int(self.deficit_surplus)} kcal deficit"
        if self.deficit_surplus < 0:
            return f"+{int(-self.deficit_surplus)} kcal surplus"
        return "0 kcal balanced"
