"""Clasificación de valores normalizados contra umbrales clínicos fijos.

Funciones puras: misma entrada, misma salida, sin excepciones.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from salud_insights.bmi import categorize
from salud_insights.constants import (
    BP_ELEVATED_DIASTOLIC_MIN,
    BP_ELEVATED_SYSTOLIC_MIN,
    BP_HIGH_DIASTOLIC_MIN,
    BP_HIGH_SYSTOLIC_MIN,
    BP_LOW_DIASTOLIC_MAX,
    BP_LOW_SYSTOLIC_MAX,
    GLUCOSE_HIGH_ABOVE,
    GLUCOSE_LOW_BELOW,
)
from salud_insights.model import Category, ClassificationResult, MetricType, Severity
from salud_insights.units import NormalizedPressure

UNKNOWN = ClassificationResult(Category.UNKNOWN, Severity.INFO)

_BMI_SEVERITY: dict[Category, Severity] = {
    Category.UNDERWEIGHT: Severity.WARNING,
    Category.NORMAL: Severity.POSITIVE,
    Category.OVERWEIGHT: Severity.WARNING,
    Category.OBESE: Severity.CRITICAL,
}


def _as_number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _as_pressure(value: object) -> tuple[float, float] | None:
    """Extrae (sistólica, diastólica) de las formas aceptadas."""
    pair: tuple[Any, Any]
    if isinstance(value, NormalizedPressure):
        pair = (value.systolic, value.diastolic)
    elif isinstance(value, Mapping):
        pair = (value.get("systolic"), value.get("diastolic"))
    elif isinstance(value, tuple | list) and len(value) == 2:
        pair = (value[0], value[1])
    else:
        return None
    systolic, diastolic = _as_number(pair[0]), _as_number(pair[1])
    if systolic is None or diastolic is None:
        return None
    return systolic, diastolic


def classify_glucose(mg_dl: float) -> ClassificationResult:
    if mg_dl > GLUCOSE_HIGH_ABOVE:
        return ClassificationResult(Category.HIGH, Severity.CRITICAL)
    if mg_dl < GLUCOSE_LOW_BELOW:
        return ClassificationResult(Category.LOW, Severity.WARNING)
    return ClassificationResult(Category.NORMAL, Severity.POSITIVE)


def classify_blood_pressure(
    systolic: float, diastolic: float, *, elevated_band: bool = True
) -> ClassificationResult:
    """Classify a systolic/diastolic pair in mmHg.

    High is checked before low, and low before elevated, so a reading that
    matches several bands gets the most urgent one.

    Args:
        systolic: Systolic pressure.
        diastolic: Diastolic pressure.
        elevated_band: Report 120-139 / 80-89 readings as ``elevated``
            instead of ``normal``.

    Returns:
        The classification.
    """
    if systolic >= BP_HIGH_SYSTOLIC_MIN or diastolic >= BP_HIGH_DIASTOLIC_MIN:
        return ClassificationResult(Category.HIGH, Severity.CRITICAL)
    if systolic <= BP_LOW_SYSTOLIC_MAX or diastolic <= BP_LOW_DIASTOLIC_MAX:
        return ClassificationResult(Category.LOW, Severity.WARNING)
    if elevated_band and (
        systolic >= BP_ELEVATED_SYSTOLIC_MIN or diastolic >= BP_ELEVATED_DIASTOLIC_MIN
    ):
        return ClassificationResult(Category.ELEVATED, Severity.WARNING)
    return ClassificationResult(Category.NORMAL, Severity.POSITIVE)


def classify_bmi(bmi: float) -> ClassificationResult:
    category = categorize(bmi)
    return ClassificationResult(category, _BMI_SEVERITY[category])


def classify(
    metric_type: MetricType, value: object, *, elevated_band: bool = True
) -> ClassificationResult:
    """Map a normalized value to a clinical category and severity.

    Args:
        metric_type: Metric of the value.
        value: mg/dL for glucose; a ``(systolic, diastolic)`` pair, mapping or
            ``NormalizedPressure`` for blood pressure; a BMI for weight.
        elevated_band: See ``classify_blood_pressure``.

    Returns:
        The classification; ``unknown/info`` for values that fit no band
        (non-finite numbers, wrong shapes).
    """
    if metric_type is MetricType.BLOOD_PRESSURE:
        pressure = _as_pressure(value)
        if pressure is None:
            return UNKNOWN
        return classify_blood_pressure(*pressure, elevated_band=elevated_band)

    number = _as_number(value)
    if number is None:
        return UNKNOWN
    if metric_type is MetricType.GLUCOSE:
        return classify_glucose(number)
    if metric_type is MetricType.WEIGHT:
        return classify_bmi(number)
    return UNKNOWN
