"""Cálculo de IMC y su categoría de peso."""

from __future__ import annotations

import math

import structlog

from salud_insights.constants import (
    BMI_OBESE_MIN,
    BMI_OVERWEIGHT_MIN,
    BMI_UNDERWEIGHT_BELOW,
    DEFAULT_HEIGHT_M,
)
from salud_insights.errors import InvalidInputError
from salud_insights.model import Category

logger = structlog.get_logger(__name__)


def _is_positive(value: object) -> bool:
    return (
        isinstance(value, int | float)
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


def compute_bmi(height_m: float, weight_kg: float) -> float:
    """Body-mass index rounded to one decimal.

    Args:
        height_m: Height in meters.
        weight_kg: Weight in kilograms.

    Returns:
        ``weight_kg / height_m**2`` rounded to one decimal.

    Raises:
        InvalidInputError: If height or weight is not a positive finite number.
    """
    if not _is_positive(height_m):
        raise InvalidInputError(f"height must be positive, got {height_m!r}")
    if not _is_positive(weight_kg):
        raise InvalidInputError(f"weight must be positive, got {weight_kg!r}")
    return round(weight_kg / (height_m * height_m), 1)


def categorize(bmi: float) -> Category:
    """Weight category of a BMI value."""
    if bmi < BMI_UNDERWEIGHT_BELOW:
        return Category.UNDERWEIGHT
    if bmi < BMI_OVERWEIGHT_MIN:
        return Category.NORMAL
    if bmi < BMI_OBESE_MIN:
        return Category.OVERWEIGHT
    return Category.OBESE


def bmi_or_default(height_m: float | None, weight_kg: float) -> float:
    """BMI using ``DEFAULT_HEIGHT_M`` when the profile height is unusable.

    Raises:
        InvalidInputError: If the weight itself is not positive.
    """
    if height_m is None or not _is_positive(height_m):
        if height_m is not None:
            logger.warning("invalid_height_defaulted", height_m=height_m)
        height_m = DEFAULT_HEIGHT_M
    return compute_bmi(height_m, weight_kg)
