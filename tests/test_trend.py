from __future__ import annotations

from datetime import timedelta

import pytest

from builders import glucose, pressure, series_of, weight
from salud_insights.model import MetricType, TrendDirection
from salud_insights.trend import (
    INSUFFICIENT_DATA,
    BloodPressureTrend,
    CompositeDirection,
    Delta,
    InsufficientData,
    delta,
    latest_change,
    period_trend,
    trend_direction,
)


def test_delta_up_with_percent() -> None:
    d = delta(168, 145)
    assert d == Delta(absolute=23.0, percent=15.9, direction=TrendDirection.UP)


def test_delta_stable_and_zero_previous() -> None:
    assert delta(5, 5) == Delta(0, 0.0, TrendDirection.STABLE)
    assert delta(10, 0).percent is None
    assert delta(10, 0).direction is TrendDirection.UP


def test_period_trend_compares_first_and_last_only() -> None:
    series = series_of(
        MetricType.GLUCOSE,
        [glucose(100, days=0), glucose(120, days=1), glucose(90, days=2)],
    )
    trend = period_trend(series)
    assert isinstance(trend, Delta)
    assert trend.direction is TrendDirection.DOWN
    assert trend.absolute == -10
    assert trend.percent == -10.0


def test_latest_change_uses_two_most_recent() -> None:
    series = series_of(
        MetricType.GLUCOSE,
        [glucose(100, days=0), glucose(120, days=1), glucose(90, days=2)],
    )
    trend = latest_change(series)
    assert isinstance(trend, Delta)
    assert trend.absolute == -30
    assert trend.percent == -25.0


def test_period_trend_window_counts_back_from_latest() -> None:
    series = series_of(
        MetricType.GLUCOSE,
        [glucose(100, days=0), glucose(150, days=5), glucose(160, days=6)],
    )
    trend = period_trend(series, timedelta(days=2))
    assert isinstance(trend, Delta)
    assert trend.absolute == 10

    assert period_trend(series, timedelta(hours=1)) is INSUFFICIENT_DATA


def test_insufficient_data_sentinel() -> None:
    single = series_of(MetricType.WEIGHT, [weight(80)])
    assert period_trend(series_of(MetricType.WEIGHT, [])) is INSUFFICIENT_DATA
    assert period_trend(single) is INSUFFICIENT_DATA
    assert latest_change(single) is INSUFFICIENT_DATA
    assert not INSUFFICIENT_DATA
    assert InsufficientData() is INSUFFICIENT_DATA
    assert repr(INSUFFICIENT_DATA) == "INSUFFICIENT_DATA"


def test_trend_normalizes_units_first() -> None:
    series = series_of(
        MetricType.WEIGHT, [weight(200, unit="lb", days=0), weight(90, days=1)]
    )
    trend = period_trend(series)
    assert isinstance(trend, Delta)
    assert trend.direction is TrendDirection.DOWN
    assert trend.absolute == pytest.approx(-0.72)


def test_trend_skips_unsupported_units() -> None:
    series = series_of(
        MetricType.GLUCOSE,
        [
            glucose(100, days=0),
            glucose(7, unit="mmol/mol", days=1),
            glucose(120, days=2),
        ],
    )
    trend = period_trend(series)
    assert isinstance(trend, Delta)
    assert trend.absolute == 20

    only_bad = series_of(
        MetricType.GLUCOSE,
        [glucose(7, unit="%", days=0), glucose(120, days=1)],
    )
    assert period_trend(only_bad) is INSUFFICIENT_DATA


@pytest.mark.parametrize(
    ("before", "after", "composite", "arrow"),
    [
        ((150, 95), (140, 90), CompositeDirection.IMPROVING, TrendDirection.DOWN),
        ((130, 80), (140, 90), CompositeDirection.WORSENING, TrendDirection.UP),
        ((140, 90), (150, 85), CompositeDirection.MIXED, TrendDirection.STABLE),
        ((130, 80), (130, 80), CompositeDirection.IMPROVING, TrendDirection.STABLE),
        ((130, 80), (130, 85), CompositeDirection.WORSENING, TrendDirection.UP),
    ],
)
def test_blood_pressure_composite(
    before: tuple[float, float],
    after: tuple[float, float],
    composite: CompositeDirection,
    arrow: TrendDirection,
) -> None:
    series = series_of(
        MetricType.BLOOD_PRESSURE,
        [pressure(*before, days=0), pressure(*after, days=1)],
    )
    trend = period_trend(series)
    assert isinstance(trend, BloodPressureTrend)
    assert trend.composite is composite
    assert trend_direction(trend) is arrow


def test_trend_direction_without_trend() -> None:
    assert trend_direction(INSUFFICIENT_DATA) is TrendDirection.NONE
    assert trend_direction(None) is TrendDirection.NONE
