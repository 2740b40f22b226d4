"""Normalización de unidades a la unidad canónica de cada métrica.

Ningún otro módulo debe interpretar el campo ``unit`` de una lectura.
"""

from __future__ import annotations

from dataclasses import dataclass

from salud_insights.constants import LB_TO_KG, MMOL_TO_MG_DL
from salud_insights.errors import UnsupportedUnitError
from salud_insights.model import (
    BloodPressureReading,
    GlucoseReading,
    Measurement,
    MetricType,
)

CANONICAL_UNITS: dict[MetricType, str] = {
    MetricType.GLUCOSE: "mg/dL",
    MetricType.BLOOD_PRESSURE: "mmHg",
    MetricType.WEIGHT: "kg",
}

# factor that takes a value in the unit to the canonical unit
_FACTORS: dict[MetricType, dict[str, float]] = {
    MetricType.GLUCOSE: {"mg/dl": 1.0, "mmol/l": MMOL_TO_MG_DL},
    MetricType.BLOOD_PRESSURE: {"mmhg": 1.0},
    MetricType.WEIGHT: {"kg": 1.0, "lb": LB_TO_KG},
}


@dataclass(frozen=True)
class NormalizedValue:
    value: float
    canonical_unit: str


@dataclass(frozen=True)
class NormalizedPressure:
    systolic: float
    diastolic: float
    canonical_unit: str = "mmHg"


def _factor(unit: str, metric_type: MetricType) -> float:
    key = unit.strip().lower() if isinstance(unit, str) else ""
    factor = _FACTORS[metric_type].get(key)
    if factor is None:
        raise UnsupportedUnitError(str(unit), metric_type.value)
    return factor


def normalize(value: float, unit: str, metric_type: MetricType) -> NormalizedValue:
    """Convert a magnitude to the canonical unit of its metric type.

    Args:
        value: Magnitude in ``unit``.
        unit: Unit as received (``mg/dL``, ``mmol/L``, ``kg``, ``lb``, ``mmHg``).
        metric_type: Metric the value belongs to.

    Returns:
        Converted value and the canonical unit name.

    Raises:
        UnsupportedUnitError: If the unit is not known for the metric.
    """
    factor = _factor(unit, metric_type)
    return NormalizedValue(
        value=value * factor, canonical_unit=CANONICAL_UNITS[metric_type]
    )


def convert(
    value: float, from_unit: str, to_unit: str, metric_type: MetricType
) -> float:
    """Convert between any two known units of the same metric.

    Raises:
        UnsupportedUnitError: If either unit is not known for the metric.
    """
    return value * _factor(from_unit, metric_type) / _factor(to_unit, metric_type)


def normalize_reading(reading: Measurement) -> NormalizedValue | NormalizedPressure:
    """Canonical magnitude(s) of a reading.

    Raises:
        UnsupportedUnitError: If the reading's unit is not known.
    """
    if isinstance(reading, BloodPressureReading):
        factor = _factor(reading.unit, MetricType.BLOOD_PRESSURE)
        return NormalizedPressure(
            systolic=reading.systolic * factor,
            diastolic=reading.diastolic * factor,
        )
    if isinstance(reading, GlucoseReading):
        return normalize(reading.value, reading.unit, MetricType.GLUCOSE)
    return normalize(reading.value, reading.unit, MetricType.WEIGHT)
