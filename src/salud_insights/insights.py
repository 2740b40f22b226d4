"""Síntesis de insights ordenados por severidad.

Cada llamada es un cálculo nuevo y sin estado sobre los datos recibidos:
los tipos de métrica ausentes simplemente no generan insight.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import structlog

from salud_insights.bmi import bmi_or_default
from salud_insights.classify import classify
from salud_insights.errors import HealthMetricsError
from salud_insights.model import (
    BloodPressureReading,
    Category,
    ConditionName,
    Insight,
    Measurement,
    MetricType,
    Severity,
    TrendDirection,
)
from salud_insights.trend import (
    BloodPressureTrend,
    InsufficientData,
    Trend,
    trend_direction,
)
from salud_insights.units import CANONICAL_UNITS, NormalizedPressure, normalize_reading

logger = structlog.get_logger(__name__)

SEVERITY_RANK: dict[Severity, int] = {
    Severity.CRITICAL: 0,
    Severity.WARNING: 1,
    Severity.INFO: 2,
    Severity.POSITIVE: 3,
}

RELEVANT_CONDITION: dict[MetricType, ConditionName] = {
    MetricType.GLUCOSE: ConditionName.DIABETES,
    MetricType.BLOOD_PRESSURE: ConditionName.HYPERTENSION,
    MetricType.WEIGHT: ConditionName.OBESITY,
}

_METRIC_ORDER: dict[MetricType, int] = {m: i for i, m in enumerate(MetricType)}

_TEMPLATES: dict[tuple[MetricType, Category], tuple[str, str]] = {
    (MetricType.GLUCOSE, Category.HIGH): (
        "High Blood Sugar",
        "Your blood sugar is above the recommended range. "
        "Consider consulting your healthcare provider.",
    ),
    (MetricType.GLUCOSE, Category.LOW): (
        "Low Blood Sugar",
        "Your blood sugar is below the normal range. Consider having a snack.",
    ),
    (MetricType.GLUCOSE, Category.NORMAL): (
        "Normal Blood Sugar",
        "Your blood sugar is within the target range.",
    ),
    (MetricType.BLOOD_PRESSURE, Category.HIGH): (
        "High Blood Pressure",
        "Your blood pressure is elevated. Monitor regularly and consult your doctor.",
    ),
    (MetricType.BLOOD_PRESSURE, Category.ELEVATED): (
        "Elevated Blood Pressure",
        "Your blood pressure is above the optimal range. "
        "Keep monitoring and limit salt intake.",
    ),
    (MetricType.BLOOD_PRESSURE, Category.LOW): (
        "Low Blood Pressure",
        "Your blood pressure is lower than normal. Monitor for symptoms.",
    ),
    (MetricType.BLOOD_PRESSURE, Category.NORMAL): (
        "Normal Blood Pressure",
        "Your blood pressure is within the normal range.",
    ),
    (MetricType.WEIGHT, Category.OBESE): (
        "Obesity Concern",
        "Your BMI indicates obesity. "
        "Consider a weight management plan with your doctor.",
    ),
    (MetricType.WEIGHT, Category.OVERWEIGHT): (
        "Overweight",
        "Your BMI indicates you're overweight. "
        "Regular exercise and a balanced diet can help.",
    ),
    (MetricType.WEIGHT, Category.UNDERWEIGHT): (
        "Underweight",
        "Your BMI indicates you're underweight. Consult with a nutritionist.",
    ),
    (MetricType.WEIGHT, Category.NORMAL): (
        "Healthy Weight",
        "Your BMI is within the healthy range.",
    ),
}

_METRIC_NAMES: dict[MetricType, str] = {
    MetricType.GLUCOSE: "Blood Sugar",
    MetricType.BLOOD_PRESSURE: "Blood Pressure",
    MetricType.WEIGHT: "Weight",
}

NOT_ENOUGH_DATA = "Not enough data yet to show a trend."


def _fmt(value: float) -> str:
    return f"{round(value, 1):g}"


def _fmt_change(value: float) -> str:
    """Magnitud de un cambio; nunca se muestra como 0 si hubo cambio."""
    magnitude = abs(value)
    if magnitude < 0.01:
        return "<0.01"
    return f"{magnitude:g}"


def _fmt_signed(value: float) -> str:
    return f"{round(value, 1):+g}"


def relevant_metrics(active_conditions: Iterable[ConditionName]) -> list[MetricType]:
    """Metric types worth an insight; all of them when no condition is active."""
    active = set(active_conditions)
    if not active:
        return list(MetricType)
    return [m for m in MetricType if RELEVANT_CONDITION[m] in active]


def describe_trend(metric_type: MetricType, trend: Trend) -> str:
    """One sentence describing a trend for display."""
    if isinstance(trend, InsufficientData):
        return NOT_ENOUGH_DATA
    if isinstance(trend, BloodPressureTrend):
        return (
            f"Trend: {trend.composite.value} "
            f"(systolic {_fmt_signed(trend.systolic.absolute)}, "
            f"diastolic {_fmt_signed(trend.diastolic.absolute)} mmHg)."
        )
    unit = CANONICAL_UNITS[metric_type]
    if trend.direction is TrendDirection.STABLE:
        return "Trend: stable."
    verb = "up" if trend.direction is TrendDirection.UP else "down"
    text = f"Trend: {verb} {_fmt_change(trend.absolute)} {unit}"
    if trend.percent is not None and round(trend.percent, 1) != 0:
        text += f" ({_fmt_signed(trend.percent)}%)"
    return text + "."


def _classify_latest(
    metric_type: MetricType, reading: Measurement, height_m: float | None
) -> tuple[Category, Severity, str]:
    """Clasifica la última lectura y arma su etiqueta canónica."""
    norm = normalize_reading(reading)
    if isinstance(norm, NormalizedPressure):
        result = classify(metric_type, norm)
        label = f"{_fmt(norm.systolic)}/{_fmt(norm.diastolic)} {norm.canonical_unit}"
        if isinstance(reading, BloodPressureReading) and reading.pulse is not None:
            label += f", pulse {_fmt(reading.pulse)} bpm"
        return result.category, result.severity, label
    if metric_type is MetricType.WEIGHT:
        bmi = bmi_or_default(height_m, norm.value)
        result = classify(metric_type, bmi)
        label = f"{_fmt(norm.value)} {norm.canonical_unit} (BMI: {bmi:.1f})"
        return result.category, result.severity, label
    result = classify(metric_type, norm.value)
    return result.category, result.severity, f"{_fmt(norm.value)} {norm.canonical_unit}"


def build_insight(
    metric_type: MetricType,
    reading: Measurement,
    trend: Trend | None = None,
    *,
    height_m: float | None = None,
) -> Insight:
    """Insight for one metric type from its latest reading and trend.

    Raises:
        UnsupportedUnitError: If the reading's unit is unknown.
        InvalidInputError: If a weight reading is not positive.
    """
    category, severity, label = _classify_latest(metric_type, reading, height_m)
    title, description = _TEMPLATES.get(
        (metric_type, category),
        (
            f"{_METRIC_NAMES[metric_type]} Reading",
            "This reading could not be classified.",
        ),
    )
    if trend is not None:
        description = f"{description} {describe_trend(metric_type, trend)}"
    return Insight(
        title=title,
        description=description,
        severity=severity,
        trend=trend_direction(trend),
        metric_label=label,
        source_metric_type=metric_type,
    )


def synthesize(
    latest_by_type: Mapping[MetricType, Measurement | None],
    trends_by_type: Mapping[MetricType, Trend],
    active_conditions: Iterable[ConditionName],
    *,
    height_m: float | None = None,
) -> tuple[Insight, ...]:
    """Ranked insights for the metric types present and relevant.

    Args:
        latest_by_type: Latest reading per metric type; may be partial.
        trends_by_type: Trend per metric type; may be partial.
        active_conditions: Conditions the user currently has.
        height_m: Profile height for BMI; a default is used when missing.

    Returns:
        Insights, most urgent first, ties in metric declaration order.
        Types with no data, or whose reading cannot be normalized, are left
        out.
    """
    insights: list[Insight] = []
    for metric_type in relevant_metrics(active_conditions):
        reading = latest_by_type.get(metric_type)
        if reading is None:
            continue
        if reading.metric_type is not metric_type:
            logger.warning(
                "insight_type_skipped",
                metric_type=metric_type.value,
                error=f"got a {reading.metric_type.value} reading",
            )
            continue
        trend = trends_by_type.get(metric_type)
        try:
            insight = build_insight(metric_type, reading, trend, height_m=height_m)
        except HealthMetricsError as exc:
            logger.warning(
                "insight_type_skipped",
                metric_type=metric_type.value,
                error=str(exc),
            )
            continue
        insights.append(insight)
    insights.sort(
        key=lambda i: (SEVERITY_RANK[i.severity], _METRIC_ORDER[i.source_metric_type])
    )
    return tuple(insights)
