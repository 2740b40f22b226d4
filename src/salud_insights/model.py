"""Modelos tipados para mediciones, condiciones e insights."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import ClassVar


class MetricType(str, Enum):
    """Tracked measurement kinds, in insight tie-break order."""

    GLUCOSE = "glucose"
    BLOOD_PRESSURE = "bloodPressure"
    WEIGHT = "weight"


class ConditionName(str, Enum):
    """Chronic conditions the engine knows how to relate to a metric."""

    DIABETES = "diabetes"
    HYPERTENSION = "hypertension"
    OBESITY = "obesity"


class ConditionStatus(str, Enum):
    ACTIVE = "active"
    MANAGED = "managed"
    UNDER_TREATMENT = "under_treatment"


class ConditionSeverity(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class Severity(str, Enum):
    """Urgency tag of a classification or insight."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"
    POSITIVE = "positive"


class Category(str, Enum):
    HIGH = "high"
    LOW = "low"
    NORMAL = "normal"
    ELEVATED = "elevated"
    UNDERWEIGHT = "underweight"
    OVERWEIGHT = "overweight"
    OBESE = "obese"
    UNKNOWN = "unknown"


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"
    NONE = "none"


@dataclass(frozen=True)
class GlucoseReading:
    """One glucose measurement event (timestamped)."""

    metric_type: ClassVar[MetricType] = MetricType.GLUCOSE

    measured_at: datetime
    value: float
    unit: str = "mg/dL"
    context: str | None = None


@dataclass(frozen=True)
class BloodPressureReading:
    """One blood pressure measurement (mmHg), with optional pulse (bpm)."""

    metric_type: ClassVar[MetricType] = MetricType.BLOOD_PRESSURE

    measured_at: datetime
    systolic: float
    diastolic: float
    pulse: float | None = None
    unit: str = "mmHg"
    context: str | None = None


@dataclass(frozen=True)
class WeightReading:
    """One body weight measurement."""

    metric_type: ClassVar[MetricType] = MetricType.WEIGHT

    measured_at: datetime
    value: float
    unit: str = "kg"
    context: str | None = None


Measurement = GlucoseReading | BloodPressureReading | WeightReading


@dataclass(frozen=True)
class Condition:
    """A diagnosed condition supplied by the condition repository."""

    name: ConditionName
    status: ConditionStatus = ConditionStatus.ACTIVE
    severity: ConditionSeverity = ConditionSeverity.MODERATE


@dataclass(frozen=True)
class ClassificationResult:
    category: Category
    severity: Severity


@dataclass(frozen=True)
class Insight:
    """Human-readable status statement for one metric type."""

    title: str
    description: str
    severity: Severity
    trend: TrendDirection
    metric_label: str
    source_metric_type: MetricType


def parse_condition_name(raw: str) -> ConditionName:
    """Parse a condition name coming from storage or the CLI.

    Args:
        raw: Condition name, case-insensitive.

    Returns:
        The matching condition.

    Raises:
        ValueError: If the name is not a known condition.
    """
    try:
        return ConditionName(raw.strip().lower())
    except ValueError:
        raise ValueError(f"Unknown condition: {raw!r}") from None
