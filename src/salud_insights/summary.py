"""Resúmenes por período sobre una serie (promedios, conteos, tiempo en rango)."""

from __future__ import annotations

from datetime import datetime, timedelta

import pandas as pd
import structlog

from salud_insights.bmi import bmi_or_default
from salud_insights.classify import classify
from salud_insights.constants import SUMMARY_WINDOW_DAYS
from salud_insights.errors import HealthMetricsError
from salud_insights.model import Category, MetricType
from salud_insights.series import MeasurementSeries
from salud_insights.units import CANONICAL_UNITS, NormalizedPressure, normalize_reading

logger = structlog.get_logger(__name__)

FRAME_COLUMNS = [
    "datetime",
    "date",
    "time",
    "metric_type",
    "value",
    "systolic",
    "diastolic",
    "pulse",
    "unit",
    "context",
    "category",
    "severity",
]

DAILY_COLUMNS = [
    "date",
    "count",
    "value_min",
    "value_max",
    "value_avg",
    "systolic_avg",
    "diastolic_avg",
]


def series_to_frame(
    series: MeasurementSeries, height_m: float | None = None
) -> pd.DataFrame:
    """One row per reading in canonical units, with its classification.

    Readings whose unit cannot be normalized are left out. Weight rows are
    classified by BMI using ``height_m`` (or the default height).
    """
    rows: list[dict[str, object]] = []
    for reading in series:
        try:
            norm = normalize_reading(reading)
            if isinstance(norm, NormalizedPressure):
                value = None
                systolic, diastolic = norm.systolic, norm.diastolic
                result = classify(series.metric_type, norm)
            else:
                value = norm.value
                systolic = diastolic = None
                if series.metric_type is MetricType.WEIGHT:
                    result = classify(
                        series.metric_type, bmi_or_default(height_m, norm.value)
                    )
                else:
                    result = classify(series.metric_type, norm.value)
        except HealthMetricsError as exc:
            logger.warning(
                "summary_row_skipped",
                metric_type=series.metric_type.value,
                measured_at=str(reading.measured_at),
                error=str(exc),
            )
            continue
        rows.append(
            {
                "datetime": reading.measured_at,
                "date": reading.measured_at.date(),
                "time": reading.measured_at.time().replace(second=0, microsecond=0),
                "metric_type": series.metric_type.value,
                "value": value,
                "systolic": systolic,
                "diastolic": diastolic,
                "pulse": getattr(reading, "pulse", None),
                "unit": CANONICAL_UNITS[series.metric_type],
                "context": reading.context,
                "category": result.category.value,
                "severity": result.severity.value,
            }
        )
    if not rows:
        return pd.DataFrame(columns=FRAME_COLUMNS)
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def daily_summary(frame: pd.DataFrame) -> pd.DataFrame:
    """Aggregate readings by day (count/min/max/avg)."""
    if frame.empty:
        return pd.DataFrame(columns=DAILY_COLUMNS)
    numeric = frame.assign(
        value=pd.to_numeric(frame["value"], errors="coerce"),
        systolic=pd.to_numeric(frame["systolic"], errors="coerce"),
        diastolic=pd.to_numeric(frame["diastolic"], errors="coerce"),
    )
    g = numeric.groupby("date", as_index=False).agg(
        count=("datetime", "count"),
        value_min=("value", "min"),
        value_max=("value", "max"),
        value_avg=("value", "mean"),
        systolic_avg=("systolic", "mean"),
        diastolic_avg=("diastolic", "mean"),
    )
    for col in ("value_avg", "systolic_avg", "diastolic_avg"):
        g[col] = g[col].round(2)
    return g[DAILY_COLUMNS].sort_values("date").reset_index(drop=True)


def _window(
    series: MeasurementSeries, days: int, now: datetime | None
) -> pd.DataFrame:
    """Filas de los últimos ``days`` días hasta ``now`` (o la última lectura)."""
    latest = series.latest()
    if latest is None:
        return pd.DataFrame(columns=FRAME_COLUMNS)
    end = now if now is not None else latest.measured_at
    start = end - timedelta(days=days)
    return series_to_frame(
        MeasurementSeries(
            series.user_id,
            series.metric_type,
            tuple(r for r in series.history(start) if r.measured_at <= end),
        )
    )


def readings_in_period(
    series: MeasurementSeries,
    days: int = SUMMARY_WINDOW_DAYS,
    now: datetime | None = None,
) -> int:
    """Number of usable readings in the last ``days`` days."""
    return len(_window(series, days, now))


def period_average(
    series: MeasurementSeries,
    days: int = SUMMARY_WINDOW_DAYS,
    now: datetime | None = None,
) -> float | tuple[float, float] | None:
    """Average over the last ``days`` days in canonical units.

    Returns:
        A float, a ``(systolic, diastolic)`` pair for blood pressure, or None
        when the window has no readings.
    """
    frame = _window(series, days, now)
    if frame.empty:
        return None
    if series.metric_type is MetricType.BLOOD_PRESSURE:
        systolic = pd.to_numeric(frame["systolic"]).mean()
        diastolic = pd.to_numeric(frame["diastolic"]).mean()
        return round(float(systolic), 1), round(float(diastolic), 1)
    return round(float(pd.to_numeric(frame["value"]).mean()), 1)


def time_in_range(
    series: MeasurementSeries, height_m: float | None = None
) -> float | None:
    """Percentage of readings classified ``normal``; None for an empty series."""
    frame = series_to_frame(series, height_m)
    if frame.empty:
        return None
    in_range = (frame["category"] == Category.NORMAL.value).sum()
    return round(float(in_range) / len(frame) * 100, 1)
