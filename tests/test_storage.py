from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

import pytest

from builders import TEST_USER, glucose, pressure, weight
from salud_insights.errors import InvalidInputError, ValidationError
from salud_insights.model import (
    Condition,
    ConditionName,
    ConditionSeverity,
    ConditionStatus,
    GlucoseReading,
    MetricType,
)
from salud_insights.storage import AppConfig, SQLiteStore


def test_store_config_round_trip(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    assert store.load_config().default_height_m == 1.75

    config = AppConfig(
        accuchek_root="/data/acc",
        fit_root="/data/fit",
        export_dir="/data/out",
        default_height_m=1.68,
    )
    store.save_config(config)
    assert store.load_config() == config


def test_bad_default_height_falls_back(tmp_path: Path) -> None:
    db = tmp_path / "app.sqlite3"
    store = SQLiteStore(db)
    with sqlite3.connect(db) as conn:
        conn.execute(
            "INSERT INTO app_config(key, value) VALUES ('default_height_m', 'abc')"
        )
        conn.commit()
    assert store.load_config().default_height_m == 1.75


def test_import_run_and_history(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    readings = [
        glucose(130, days=1, context="ayuno"),
        glucose(6.0, unit="mmol/L", days=0),
    ]

    run_id = store.save_measurements(
        TEST_USER, readings, source="accuchek", source_file="/a/accuchek_1.json"
    )
    assert run_id is not None
    assert run_id > 0
    assert store.latest_run_id() == run_id

    history = store.fetch_history(TEST_USER, MetricType.GLUCOSE)
    assert list(history) == [glucose(6.0, unit="mmol/L", days=0), readings[0]]
    assert store.fetch_latest(TEST_USER, MetricType.GLUCOSE) == readings[0]
    assert store.fetch_history(TEST_USER, MetricType.WEIGHT) == []
    assert store.fetch_latest("otro", MetricType.GLUCOSE) is None


def test_reimport_skips_duplicate_rows(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    readings = [weight(80, days=0), weight(79.5, days=1)]

    first_run = store.save_measurements(TEST_USER, readings, source="google_fit")
    second_run = store.save_measurements(TEST_USER, readings, source="google_fit")
    third_run = store.save_measurements(
        TEST_USER, [*readings, weight(79, days=2)], source="google_fit"
    )

    assert first_run is not None
    assert second_run is None
    assert third_run is not None
    assert len(store.fetch_history(TEST_USER, MetricType.WEIGHT)) == 3


def test_same_rows_for_other_user_are_kept(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    store.save_measurements("a", [weight(80)], source="google_fit")
    assert store.save_measurements("b", [weight(80)], source="google_fit") is not None


def test_import_skips_invalid_readings(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    run_id = store.save_measurements(
        TEST_USER,
        [pressure(120, 80), pressure(80, 120, days=1), glucose(-1)],
        source="manual",
    )
    assert run_id is not None
    assert store.fetch_history(TEST_USER, MetricType.BLOOD_PRESSURE) == [
        pressure(120, 80)
    ]
    assert store.fetch_history(TEST_USER, MetricType.GLUCOSE) == []

    assert store.save_measurements(TEST_USER, [glucose(0)], source="manual") is None


def test_manual_readings_are_not_deduplicated(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    bp = pressure(135, 85, pulse=72)
    store.save_measurement(TEST_USER, bp)
    store.save_measurement(TEST_USER, bp)
    assert store.fetch_history(TEST_USER, MetricType.BLOOD_PRESSURE) == [bp, bp]
    assert store.latest_run_id() is None


def test_manual_invalid_reading_raises(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    with pytest.raises(ValidationError):
        store.save_measurement(TEST_USER, weight(0))


def test_conditions_upsert_and_active(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    assert store.fetch_active_conditions(TEST_USER) == frozenset()

    store.save_condition(TEST_USER, Condition(ConditionName.DIABETES))
    store.save_condition(
        TEST_USER,
        Condition(
            ConditionName.DIABETES,
            ConditionStatus.MANAGED,
            ConditionSeverity.MILD,
        ),
    )
    store.save_condition(
        TEST_USER,
        Condition(ConditionName.HYPERTENSION, ConditionStatus.UNDER_TREATMENT),
    )

    conditions = store.fetch_conditions(TEST_USER)
    assert conditions == [
        Condition(
            ConditionName.DIABETES, ConditionStatus.MANAGED, ConditionSeverity.MILD
        ),
        Condition(ConditionName.HYPERTENSION, ConditionStatus.UNDER_TREATMENT),
    ]
    assert store.fetch_active_conditions(TEST_USER) == frozenset(
        {ConditionName.DIABETES, ConditionName.HYPERTENSION}
    )


def test_unknown_condition_rows_are_skipped(tmp_path: Path) -> None:
    db = tmp_path / "app.sqlite3"
    store = SQLiteStore(db)
    store.save_condition(TEST_USER, Condition(ConditionName.OBESITY))
    with sqlite3.connect(db) as conn:
        conn.execute(
            "INSERT INTO conditions(user_id, name, status, severity) "
            "VALUES (?, 'asthma', 'active', 'mild')",
            (TEST_USER,),
        )
        conn.commit()
    assert store.fetch_active_conditions(TEST_USER) == frozenset(
        {ConditionName.OBESITY}
    )


def test_height_profile(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    assert store.fetch_height(TEST_USER) is None
    store.save_height(TEST_USER, 1.70)
    store.save_height(TEST_USER, 1.72)
    assert store.fetch_height(TEST_USER) == 1.72

    with pytest.raises(InvalidInputError):
        store.save_height(TEST_USER, 0)
    assert store.fetch_height(TEST_USER) == 1.72


def test_naive_timestamps_are_rejected_at_the_store(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    store.save_measurements(TEST_USER, [glucose(100)], source="accuchek")
    naive = GlucoseReading(datetime(2026, 3, 1, 8, 0), 110)

    with pytest.raises(ValidationError, match="timezone"):
        store.save_measurement(TEST_USER, naive)
    assert store.save_measurements(TEST_USER, [naive], source="manual") is None
    assert store.fetch_latest(TEST_USER, MetricType.GLUCOSE) == glucose(100)


def test_legacy_naive_rows_are_skipped_on_read(tmp_path: Path) -> None:
    db = tmp_path / "app.sqlite3"
    store = SQLiteStore(db)
    store.save_measurement(TEST_USER, glucose(100))
    with sqlite3.connect(db) as conn:
        conn.execute(
            "INSERT INTO measurements(user_id, metric_type, measured_at, value, unit) "
            "VALUES (?, 'glucose', '2026-03-01T08:00:00', 110, 'mg/dL')",
            (TEST_USER,),
        )
        conn.commit()
    assert store.fetch_history(TEST_USER, MetricType.GLUCOSE) == [glucose(100)]
