"""Cálculo de tendencias: deltas punto a punto y por período."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import cast

import structlog

from salud_insights.errors import UnsupportedUnitError
from salud_insights.model import Measurement, TrendDirection
from salud_insights.series import MeasurementSeries
from salud_insights.units import NormalizedPressure, normalize_reading

logger = structlog.get_logger(__name__)


class CompositeDirection(str, Enum):
    IMPROVING = "improving"
    WORSENING = "worsening"
    MIXED = "mixed"


@dataclass(frozen=True)
class Delta:
    """Change between two values, in canonical units."""

    absolute: float
    percent: float | None
    direction: TrendDirection


@dataclass(frozen=True)
class BloodPressureTrend:
    systolic: Delta
    diastolic: Delta
    composite: CompositeDirection


class InsufficientData:
    """Sentinel returned when fewer than two readings are available."""

    _instance: InsufficientData | None = None

    def __new__(cls) -> InsufficientData:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "INSUFFICIENT_DATA"


INSUFFICIENT_DATA = InsufficientData()

Trend = Delta | BloodPressureTrend | InsufficientData


def delta(current: float, previous: float) -> Delta:
    """Absolute and percentage change from ``previous`` to ``current``.

    Args:
        current: Newer value.
        previous: Older value.

    Returns:
        Delta with ``percent=None`` when ``previous`` is zero.
    """
    if current > previous:
        direction = TrendDirection.UP
    elif current < previous:
        direction = TrendDirection.DOWN
    else:
        direction = TrendDirection.STABLE
    diff = current - previous
    percent = None if previous == 0 else round(diff / abs(previous) * 100, 1)
    return Delta(absolute=round(diff, 2), percent=percent, direction=direction)


def composite_direction(systolic: Delta, diastolic: Delta) -> CompositeDirection:
    """Combine systolic and diastolic directions into one verdict."""
    directions = (systolic.direction, diastolic.direction)
    if TrendDirection.UP not in directions:
        return CompositeDirection.IMPROVING
    if TrendDirection.DOWN not in directions:
        return CompositeDirection.WORSENING
    return CompositeDirection.MIXED


def _normalized(
    readings: Sequence[Measurement],
) -> list[float | NormalizedPressure]:
    """Valores canónicos de las lecturas; las de unidad desconocida se omiten."""
    out: list[float | NormalizedPressure] = []
    for reading in readings:
        try:
            norm = normalize_reading(reading)
        except UnsupportedUnitError as exc:
            logger.warning(
                "unsupported_unit_skipped",
                metric_type=reading.metric_type.value,
                unit=exc.unit,
                measured_at=str(reading.measured_at),
            )
            continue
        out.append(norm if isinstance(norm, NormalizedPressure) else norm.value)
    return out


def _between(
    first: float | NormalizedPressure, last: float | NormalizedPressure
) -> Delta | BloodPressureTrend:
    if isinstance(first, NormalizedPressure) and isinstance(last, NormalizedPressure):
        systolic = delta(last.systolic, first.systolic)
        diastolic = delta(last.diastolic, first.diastolic)
        return BloodPressureTrend(
            systolic=systolic,
            diastolic=diastolic,
            composite=composite_direction(systolic, diastolic),
        )
    return delta(cast(float, last), cast(float, first))


def period_trend(series: MeasurementSeries, window: timedelta | None = None) -> Trend:
    """Change between the first and last readings of a window.

    Args:
        series: Series to inspect.
        window: Span measured back from the latest reading; the whole history
            when omitted.

    Returns:
        A ``Delta`` (``BloodPressureTrend`` for blood pressure), or
        ``INSUFFICIENT_DATA`` when fewer than two usable readings fall in the
        window.
    """
    latest = series.latest()
    if latest is None:
        return INSUFFICIENT_DATA
    since = latest.measured_at - window if window is not None else None
    values = _normalized(series.history(since))
    if len(values) < 2:
        return INSUFFICIENT_DATA
    return _between(values[0], values[-1])


def latest_change(series: MeasurementSeries) -> Trend:
    """Change between the two most recent usable readings."""
    values = _normalized(series.history())
    if len(values) < 2:
        return INSUFFICIENT_DATA
    return _between(values[-2], values[-1])


def trend_direction(trend: Trend | None) -> TrendDirection:
    """Arrow to show for a trend; blood pressure uses its composite verdict."""
    if isinstance(trend, Delta):
        return trend.direction
    if isinstance(trend, BloodPressureTrend):
        if trend.composite is CompositeDirection.WORSENING:
            return TrendDirection.UP
        if trend.composite is CompositeDirection.IMPROVING and (
            TrendDirection.DOWN
            in (trend.systolic.direction, trend.diastolic.direction)
        ):
            return TrendDirection.DOWN
        return TrendDirection.STABLE
    return TrendDirection.NONE
