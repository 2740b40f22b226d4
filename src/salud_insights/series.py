"""Serie ordenada e inmutable de lecturas por usuario y tipo de métrica."""

from __future__ import annotations

import math
from bisect import bisect_right
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime

import structlog

from salud_insights.errors import ValidationError
from salud_insights.model import BloodPressureReading, Measurement, MetricType

logger = structlog.get_logger(__name__)


def _check_positive(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be finite, got {value!r}")
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value!r}")


def validate_reading(reading: Measurement) -> None:
    """Reject readings that are malformed or physically impossible.

    Args:
        reading: Reading to check.

    Raises:
        ValidationError: If a magnitude is non-finite or non-positive, or if
            systolic is not above diastolic.
    """
    if not isinstance(reading.measured_at, datetime):
        raise ValidationError("measured_at must be a datetime")
    if isinstance(reading, BloodPressureReading):
        _check_positive("systolic", reading.systolic)
        _check_positive("diastolic", reading.diastolic)
        if reading.pulse is not None:
            _check_positive("pulse", reading.pulse)
        if reading.systolic <= reading.diastolic:
            raise ValidationError(
                f"systolic ({reading.systolic}) must be above "
                f"diastolic ({reading.diastolic})"
            )
        return
    _check_positive("value", reading.value)


@dataclass(frozen=True)
class MeasurementSeries:
    """Readings for one (user, metric type) pair, ascending by ``measured_at``.

    The series is never mutated; ``append`` returns a new one, so any holder
    of a series always sees a consistent snapshot.
    """

    user_id: str
    metric_type: MetricType
    readings: tuple[Measurement, ...] = ()

    @classmethod
    def from_readings(
        cls,
        user_id: str,
        metric_type: MetricType,
        readings: Iterable[Measurement],
    ) -> MeasurementSeries:
        """Build a series from unordered readings, skipping invalid ones.

        Readings are checked before sorting. When naive and timezone-aware
        timestamps are mixed, the minority kind is rejected (aware wins a tie).

        Args:
            user_id: Owner of the readings.
            metric_type: Metric of the series.
            readings: Readings in any order.

        Returns:
            Series with every valid reading, stable-sorted by timestamp.
        """
        valid: list[Measurement] = []
        for reading in readings:
            try:
                if reading.metric_type is not metric_type:
                    raise ValidationError(
                        f"{reading.metric_type.value} reading in "
                        f"{metric_type.value} series"
                    )
                validate_reading(reading)
            except ValidationError as exc:
                _log_rejected(user_id, metric_type, reading, str(exc))
                continue
            valid.append(reading)

        aware_count = sum(r.measured_at.tzinfo is not None for r in valid)
        aware = aware_count * 2 >= len(valid)
        kept: list[Measurement] = []
        for reading in valid:
            if (reading.measured_at.tzinfo is not None) != aware:
                _log_rejected(
                    user_id,
                    metric_type,
                    reading,
                    "measured_at mixes naive and timezone-aware timestamps",
                )
                continue
            kept.append(reading)
        kept.sort(key=lambda r: r.measured_at)
        return cls(user_id=user_id, metric_type=metric_type, readings=tuple(kept))

    def append(self, reading: Measurement) -> MeasurementSeries:
        """Return a new series that also contains ``reading``.

        Readings sharing a timestamp are all kept, in arrival order.

        Raises:
            ValidationError: If the reading is invalid or belongs to another
                metric type.
        """
        if reading.metric_type is not self.metric_type:
            raise ValidationError(
                f"{reading.metric_type.value} reading appended to "
                f"{self.metric_type.value} series"
            )
        validate_reading(reading)
        if self.readings:
            aware = self.readings[0].measured_at.tzinfo is not None
            if (reading.measured_at.tzinfo is not None) != aware:
                raise ValidationError(
                    "measured_at mixes naive and timezone-aware timestamps"
                )
        idx = bisect_right(
            self.readings, reading.measured_at, key=lambda r: r.measured_at
        )
        readings = self.readings[:idx] + (reading,) + self.readings[idx:]
        return MeasurementSeries(self.user_id, self.metric_type, readings)

    def latest(self) -> Measurement | None:
        return self.readings[-1] if self.readings else None

    def history(self, since: datetime | None = None) -> tuple[Measurement, ...]:
        """Readings ascending by timestamp, optionally from ``since`` on."""
        if since is None:
            return self.readings
        return tuple(r for r in self.readings if r.measured_at >= since)

    def is_empty(self) -> bool:
        return not self.readings

    def __len__(self) -> int:
        return len(self.readings)

    def __iter__(self) -> Iterator[Measurement]:
        return iter(self.readings)


def _log_rejected(
    user_id: str, metric_type: MetricType, reading: Measurement, error: str
) -> None:
    logger.warning(
        "reading_rejected",
        user_id=user_id,
        metric_type=metric_type.value,
        measured_at=str(reading.measured_at),
        error=error,
    )
