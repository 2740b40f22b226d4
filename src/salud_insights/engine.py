"""Fachada de consulta sobre la instantánea de series de un usuario."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import MappingProxyType

from salud_insights.bmi import compute_bmi
from salud_insights.classify import classify
from salud_insights.insights import synthesize
from salud_insights.model import (
    ClassificationResult,
    ConditionName,
    Insight,
    Measurement,
    MetricType,
)
from salud_insights.series import MeasurementSeries
from salud_insights.trend import Trend, latest_change, period_trend


@dataclass(frozen=True)
class HealthSnapshot:
    """Possibly-partial set of per-metric series for one user.

    Metric types that have not arrived behave as empty series. Nothing here
    mutates: ``with_reading`` and ``with_series`` return new snapshots.
    """

    user_id: str
    series: Mapping[MetricType, MeasurementSeries] = field(
        default_factory=lambda: MappingProxyType({})
    )
    height_m: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "series", MappingProxyType(dict(self.series)))

    def series_for(self, metric_type: MetricType) -> MeasurementSeries:
        found = self.series.get(metric_type)
        if found is None:
            return MeasurementSeries(user_id=self.user_id, metric_type=metric_type)
        return found

    def with_series(self, series: MeasurementSeries) -> HealthSnapshot:
        updated = {**self.series, series.metric_type: series}
        return HealthSnapshot(self.user_id, updated, self.height_m)

    def with_reading(self, reading: Measurement) -> HealthSnapshot:
        """Return a snapshot that also holds ``reading``.

        Raises:
            ValidationError: If the reading is invalid.
        """
        return self.with_series(self.series_for(reading.metric_type).append(reading))

    def latest(self, metric_type: MetricType) -> Measurement | None:
        return self.series_for(metric_type).latest()

    def history(
        self, metric_type: MetricType, since: datetime | None = None
    ) -> tuple[Measurement, ...]:
        return self.series_for(metric_type).history(since)

    def trend(self, metric_type: MetricType, window: timedelta | None = None) -> Trend:
        """Period trend of a metric; ``INSUFFICIENT_DATA`` below two readings."""
        return period_trend(self.series_for(metric_type), window)

    def classify(self, metric_type: MetricType, value: object) -> ClassificationResult:
        """Classify a normalized value (a BMI for weight)."""
        return classify(metric_type, value)

    def bmi(self, height_m: float, weight_kg: float) -> float:
        """BMI of the given height and weight.

        Raises:
            InvalidInputError: If either input is not positive.
        """
        return compute_bmi(height_m, weight_kg)

    def insights(
        self, active_conditions: Iterable[ConditionName]
    ) -> tuple[Insight, ...]:
        """Ranked insights using the latest reading and last change per metric."""
        latest_by_type: dict[MetricType, Measurement | None] = {}
        trends_by_type: dict[MetricType, Trend] = {}
        for metric_type, series in self.series.items():
            latest_by_type[metric_type] = series.latest()
            trends_by_type[metric_type] = latest_change(series)
        return synthesize(
            latest_by_type,
            trends_by_type,
            active_conditions,
            height_m=self.height_m,
        )
