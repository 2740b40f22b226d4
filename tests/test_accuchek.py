from __future__ import annotations

import json
from pathlib import Path

import pytest

from salud_insights.sources.accuchek import (
    AccuChekPaths,
    AccuChekSource,
    _extract_json_list,
    _parse_timestamp,
)


def _source(root: Path) -> AccuChekSource:
    return AccuChekSource(AccuChekPaths(root=root))


def _write(path: Path, data: object) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_accuchek_parses_list(tmp_path: Path) -> None:
    p = _write(
        tmp_path / "accuchek_2026-01-31_11-57-00.json",
        [
            {"timestamp": "2026/01/31 11:57", "mg/dL": 119, "mmol/L": 6.611111},
            {"epoch": 1769774400, "mg/dL": 118, "mmol/L": 6.555556},
        ],
    )
    readings = _source(tmp_path).load_readings(p)

    assert len(readings) == 2
    assert {r.value for r in readings} == {118.0, 119.0}
    assert all(r.unit == "mg/dL" for r in readings)


def test_validate_raises_when_root_missing(tmp_path: Path) -> None:
    missing = tmp_path / "noexiste"
    with pytest.raises(FileNotFoundError, match=str(missing)):
        _source(missing).validate()


def test_validate_succeeds_when_root_exists(tmp_path: Path) -> None:
    _source(tmp_path).validate()


def test_newest_json_raises_when_no_files(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="No accuchek_"):
        _source(tmp_path).newest_json()


def test_newest_json_and_input_files(tmp_path: Path) -> None:
    p = tmp_path / "accuchek_2026-01-31.json"
    p.write_text("[]", encoding="utf-8")
    (tmp_path / "otro.json").write_text("[]", encoding="utf-8")
    src = _source(tmp_path)
    assert src.newest_json() == p
    assert src.input_files() == [p]


def test_load_readings_invalid_json_raises(tmp_path: Path) -> None:
    p = tmp_path / "bad.json"
    p.write_text("not json", encoding="utf-8")
    with pytest.raises(json.JSONDecodeError):
        _source(tmp_path).load_readings(p)


def test_load_readings_not_list_raises(tmp_path: Path) -> None:
    p = tmp_path / "obj.json"
    p.write_text('{"a": 1}', encoding="utf-8")
    with pytest.raises(ValueError, match="must be a list"):
        _source(tmp_path).load_readings(p)


def test_load_readings_skips_non_dict_items(tmp_path: Path) -> None:
    p = _write(
        tmp_path / "mixed.json",
        [
            {"timestamp": "2026/01/31 08:00", "mg/dL": 100, "mmol/L": 5.55},
            "string",
            42,
            None,
        ],
    )
    readings = _source(tmp_path).load_readings(p)
    assert len(readings) == 1
    assert readings[0].value == 100.0


def test_load_readings_falls_back_to_mmol(tmp_path: Path) -> None:
    p = _write(
        tmp_path / "partial.json",
        [
            {"timestamp": "2026/01/31 08:00", "mmol/L": 5.55},
            {"timestamp": "2026/01/31 09:00", "mg/dL": 110},
            {"timestamp": "2026/01/31 10:00"},
        ],
    )
    readings = _source(tmp_path).load_readings(p)
    assert [(r.value, r.unit) for r in readings] == [
        (5.55, "mmol/L"),
        (110.0, "mg/dL"),
    ]


def test_load_readings_missing_timestamp_and_epoch_raises(tmp_path: Path) -> None:
    p = _write(tmp_path / "no_ts.json", [{"mg/dL": 100, "mmol/L": 5.55}])
    with pytest.raises(ValueError, match="Missing timestamp"):
        _source(tmp_path).load_readings(p)


def test_load_readings_parses_timestamp_string(tmp_path: Path) -> None:
    p = _write(
        tmp_path / "ts_str.json",
        [{"timestamp": "2026/01/31 11:57", "mg/dL": 119, "mmol/L": 6.6}],
    )
    readings = _source(tmp_path).load_readings(p)
    assert len(readings) == 1
    assert readings[0].measured_at.strftime("%Y/%m/%d %H:%M") == "2026/01/31 11:57"
    assert readings[0].measured_at.tzinfo is not None


def test_load_readings_empty_list_returns_empty(tmp_path: Path) -> None:
    p = tmp_path / "empty.json"
    p.write_text("[]", encoding="utf-8")
    assert _source(tmp_path).load_readings(p) == []


def test_load_readings_sorts_by_timestamp(tmp_path: Path) -> None:
    p = _write(
        tmp_path / "unsorted.json",
        [
            {"timestamp": "2026/01/31 14:00", "mg/dL": 120, "mmol/L": 6.66},
            {"timestamp": "2026/01/31 08:00", "mg/dL": 95, "mmol/L": 5.27},
        ],
    )
    readings = _source(tmp_path).load_readings(p)
    assert [r.value for r in readings] == [95.0, 120.0]


def test_parse_timestamp_from_string() -> None:
    ts = _parse_timestamp("2026/01/31 11:57", None)
    assert ts.strftime("%Y/%m/%d %H:%M") == "2026/01/31 11:57"
    assert ts.tzinfo is not None


def test_parse_timestamp_empty_string_uses_epoch() -> None:
    ts = _parse_timestamp("", 1769774400)
    assert ts.tzinfo is not None


def test_parse_timestamp_missing_both_raises() -> None:
    with pytest.raises(ValueError, match="Missing timestamp"):
        _parse_timestamp(None, None)


def test_load_readings_tag_becomes_context(tmp_path: Path) -> None:
    p = _write(
        tmp_path / "with_tag.json",
        [
            {
                "timestamp": "2026/01/31 08:00",
                "mg/dL": 100,
                "tag": "Antes comida",
            },
            {"timestamp": "2026/01/31 14:00", "mg/dL": 118, "tag": "  "},
            {"timestamp": "2026/01/31 20:00", "mg/dL": 130},
        ],
    )
    readings = _source(tmp_path).load_readings(p)
    assert [r.context for r in readings] == ["Antes comida", None, None]


def test_extract_json_list_with_leading_garbage() -> None:
    text = (
        "0.594510(   +0.000000):info: running as non-root\n"
        '[{"mg/dL": 100, "mmol/L": 5.55}]'
    )
    raw = _extract_json_list(text)
    assert isinstance(raw, list)
    assert raw[0]["mg/dL"] == 100
