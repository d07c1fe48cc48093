"""
BMR Calculator.

Basal Metabolic Rate by the Mifflin-St Jeor equation:

    BMR = 10 * weight_kg + 6.25 * height_cm - 5 * age_years + sex_term

with sex_term = +5 for males and -161 for females.
"""

import logging
from datetime import date
from typing import Optional

from .errors import ProfileNotConfiguredError, ProfileValidationError
from .models import Sex, UserProfile
from .results import Component, ComponentReading

logger = logging.getLogger(__name__)

SEX_TERMS = {
    Sex.MALE: 5.0,
    Sex.FEMALE: -161.0,
}


def calculate_bmr(profile: UserProfile, on: date) -> float:
    """
    Calculate resting metabolic rate in kcal/day.

    Age is taken on the query date, so a historical day uses the age the
    user had on that day.

    Args:
        profile: Biometric snapshot
        on: Date the BMR applies to

    Returns:
        BMR in kcal/day

    Raises:
        ProfileValidationError: if age, weight or height is out of range
    """
    profile.validate_ranges(on)

    age = profile.age_on(on)
    bmr = (
        10 * profile.weight_kg
        + 6.25 * profile.height_cm
        - 5 * age
        + SEX_TERMS[profile.sex]
    )

    logger.debug(
        f"[BMR] {bmr:.2f} kcal/day (sex={profile.sex.value}, age={age}, "
        f"weight={profile.weight_kg}kg, height={profile.height_cm}cm)"
    )
    return bmr


def bmr_reading(profile: Optional[UserProfile], on: date) -> ComponentReading:
    """BMR as a component reading; a missing or invalid profile is unavailable."""
    if profile is None:
        logger.info("[BMR] Unavailable - user profile not configured")
        return ComponentReading.failed(Component.BMR, ProfileNotConfiguredError())

    try:
        return ComponentReading.ok(Component.BMR, calculate_bmr(profile, on))
    except ProfileValidationError as e:
        logger.warning(f"[BMR] Invalid profile ({e.field}): {e}")
        return ComponentReading.failed(Component.BMR, e)
