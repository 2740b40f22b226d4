from __future__ import annotations

from datetime import datetime

import pytest

from builders import TEST_USER, at, glucose, pressure, series_of, weight
from salud_insights.errors import ValidationError
from salud_insights.model import (
    BloodPressureReading,
    GlucoseReading,
    Measurement,
    MetricType,
)
from salud_insights.series import MeasurementSeries, validate_reading


def test_from_readings_sorts_ascending() -> None:
    series = series_of(
        MetricType.GLUCOSE,
        [glucose(120, days=2), glucose(100, days=0), glucose(110, days=1)],
    )
    assert [r.value for r in series] == [100, 110, 120]
    assert series.latest() == glucose(120, days=2)


def test_equal_timestamps_keep_arrival_order() -> None:
    first = glucose(100, context="first")
    second = glucose(140, context="second")
    series = series_of(MetricType.GLUCOSE, [first, second])
    assert series.history() == (first, second)

    third = glucose(90, context="third")
    assert series.append(third).history() == (first, second, third)


def test_append_returns_new_series_and_keeps_original() -> None:
    series = series_of(MetricType.WEIGHT, [weight(80, days=0), weight(82, days=2)])
    updated = series.append(weight(81, days=1))
    assert [r.value for r in updated] == [80, 81, 82]
    assert [r.value for r in series] == [80, 82]


def test_append_rejects_other_metric_type() -> None:
    series = MeasurementSeries(TEST_USER, MetricType.GLUCOSE)
    with pytest.raises(ValidationError, match="weight reading"):
        series.append(weight(80))


def test_append_rejects_mixed_naive_and_aware_timestamps() -> None:
    series = series_of(MetricType.GLUCOSE, [glucose(100)])
    naive = GlucoseReading(datetime(2026, 3, 3, 8, 0), 100)
    with pytest.raises(ValidationError, match="naive"):
        series.append(naive)


@pytest.mark.parametrize(
    "reading",
    [
        glucose(0),
        glucose(-5),
        glucose(float("nan")),
        glucose(float("inf")),
        GlucoseReading(at(), True),  # type: ignore[arg-type]
        GlucoseReading(at(), "120"),  # type: ignore[arg-type]
        weight(-70),
        pressure(80, 120),
        pressure(90, 90),
        pressure(120, 0),
        pressure(120, 80, pulse=0),
        BloodPressureReading("2026-03-02", 120, 80),  # type: ignore[arg-type]
    ],
)
def test_validate_reading_rejects_impossible_values(reading: Measurement) -> None:
    with pytest.raises(ValidationError):
        validate_reading(reading)


def test_validation_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        validate_reading(glucose(-1))


def test_from_readings_skips_invalid_readings() -> None:
    series = series_of(
        MetricType.BLOOD_PRESSURE,
        [
            pressure(120, 80, days=0),
            pressure(70, 90, days=1),
            pressure(130, 85, days=2),
        ],
    )
    assert len(series) == 2
    assert [r.systolic for r in series] == [120, 130]


def test_from_readings_drops_minority_naive_readings() -> None:
    naive = GlucoseReading(datetime(2026, 3, 1, 8, 0), 110)
    series = MeasurementSeries.from_readings(
        TEST_USER,
        MetricType.GLUCOSE,
        [glucose(100), naive, glucose(120, days=1)],
    )
    assert list(series) == [glucose(100), glucose(120, days=1)]


def test_from_readings_keeps_naive_majority() -> None:
    naive = [
        GlucoseReading(datetime(2026, 3, 2, 8, 0), 110),
        GlucoseReading(datetime(2026, 3, 1, 8, 0), 105),
    ]
    series = MeasurementSeries.from_readings(
        TEST_USER, MetricType.GLUCOSE, [glucose(100), *naive]
    )
    assert [r.value for r in series] == [105, 110]


def test_from_readings_skips_non_datetime_before_sorting() -> None:
    bad = BloodPressureReading("2026-03-02", 120, 80)  # type: ignore[arg-type]
    series = MeasurementSeries.from_readings(
        TEST_USER, MetricType.BLOOD_PRESSURE, [pressure(130, 85), bad]
    )
    assert list(series) == [pressure(130, 85)]


def test_history_since_is_inclusive() -> None:
    series = series_of(
        MetricType.GLUCOSE,
        [glucose(100, days=0), glucose(110, days=1), glucose(120, days=2)],
    )
    assert [r.value for r in series.history(at(days=1))] == [110, 120]
    assert series.history(at(days=5)) == ()


def test_empty_series() -> None:
    series = MeasurementSeries(TEST_USER, MetricType.WEIGHT)
    assert series.is_empty()
    assert series.latest() is None
    assert series.history() == ()
    assert len(series) == 0
