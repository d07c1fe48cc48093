"""
Energy Balance Error Taxonomy.

Required components (BMR) fail the whole result; optional components
(NEAT, Active, Calories In) degrade to 0.0 and keep the failure as metadata.
"""

from typing import Optional


class EnergyBalanceError(Exception):
    """Base class for all energy balance errors."""


class ProfileNotConfiguredError(EnergyBalanceError):
    """No usable user profile is configured, so BMR cannot be calculated."""

    def __init__(
        self, message: str = "User profile must be configured to calculate BMR"
    ):
        super().__init__(message)


class ProfileValidationError(ProfileNotConfiguredError):
    """A user profile field is outside its allowed range.

    Callers handling ProfileNotConfiguredError receive it as well.
    """

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class PermissionDeniedError(EnergyBalanceError):
    """Read access to a data source was denied by the user or platform."""

    def __init__(self, source: str, message: Optional[str] = None):
        super().__init__(message or f"Read permission denied for {source}")
        self.source = source


class DataSourceError(EnergyBalanceError):
    """A data source failed for a reason other than permissions (e.g. timeout)."""

    def __init__(self, source: str, message: Optional[str] = None):
        super().__init__(message or f"Data source {source} unavailable")
        self.source = source
