"""
Component Readings and Aggregate Results.

Availability is a tagged status rather than a nullable value: a reading is
either OK with a value, or PERMISSION_DENIED / UNAVAILABLE with 0.0 and the
error that caused it. The constructors make "denied but has data" impossible.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, Optional, Union

from .errors import PermissionDeniedError
from .models import EnergyBalance, MacroTotals


class Component(str, Enum):
    """Terms of the energy balance equation."""

    BMR = "bmr"
    NEAT = "neat"
    ACTIVE = "active"
    CALORIES_IN = "calories_in"


class ComponentStatus(str, Enum):
    """Availability of a single component."""

    OK = "ok"
    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"


class BalanceMode(str, Enum):
    """How a result was produced."""

    LIVE = "live"
    HISTORICAL = "historical"


@dataclass(frozen=True)
class ComponentReading:
    """Latest known value of one component."""

    component: Component
    status: ComponentStatus
    kcal: float = 0.0
    error: Optional[Exception] = None
    macros: Optional[MacroTotals] = None

    def __post_init__(self):
        if self.status is ComponentStatus.OK:
            if self.error is not None:
                raise ValueError("an OK reading cannot carry an error")
        elif self.kcal != 0.0 or self.error is None:
            raise ValueError(
                f"a {self.status.value} reading must be 0.0 and carry its error"
            )

    @classmethod
    def ok(
        cls, component: Component, kcal: float, macros: Optional[MacroTotals] = None
    ) -> "ComponentReading":
        return cls(component, ComponentStatus.OK, kcal, macros=macros)

    @classmethod
    def failed(cls, component: Component, error: Exception) -> "ComponentReading":
        """Reading for a component whose source raised error."""
        status = (
            ComponentStatus.PERMISSION_DENIED
            if isinstance(error, PermissionDeniedError)
            else ComponentStatus.UNAVAILABLE
        )
        return cls(component, status, 0.0, error=error)

    @property
    def available(self) -> bool:
        return self.status is ComponentStatus.OK

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "component": self.component.value,
            "status": self.status.value,
            "kcal": self.kcal,
            "error": str(self.error) if self.error else None,
        }


@dataclass(frozen=True)
class BalanceSuccess:
    """Successful aggregate, with the availability of each component."""

    date: date
    mode: BalanceMode
    balance: EnergyBalance
    components: Dict[Component, ComponentStatus]
    computed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def permission_denied(self) -> FrozenSet[Component]:
        """Components degraded to 0.0 because read access was denied."""
        return frozenset(
            c
            for c, status in self.components.items()
            if status is ComponentStatus.PERMISSION_DENIED
        )

    @property
    def unavailable(self) -> FrozenSet[Component]:
        """Components degraded to 0.0 because their source failed."""
        return frozenset(
            c
            for c, status in self.components.items()
            if status is ComponentStatus.UNAVAILABLE
        )

    @property
    def is_success(self) -> bool:
        return True

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "date": self.date.isoformat(),
            "mode": self.mode.value,
            "balance": self.balance.model_dump(by_alias=True),
            "components": {c.value: s.value for c, s in self.components.items()},
            "computed_at": self.computed_at.isoformat(),
        }


@dataclass(frozen=True)
class BalanceFailure:
    """Aggregate that could not be produced because a required component failed."""

    date: date
    mode: BalanceMode
    error: Exception
    computed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_success(self) -> bool:
        return False

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "date": self.date.isoformat(),
            "mode": self.mode.value,
            "error": str(self.error),
            "error_type": type(self.error).__name__,
            "computed_at": self.computed_at.isoformat(),
        }


BalanceResult = Union[BalanceSuccess, BalanceFailure]
