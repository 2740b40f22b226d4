"""Lectura de exportaciones JSON de Accu-Chek."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from salud_insights.model import GlucoseReading
from salud_insights.sources.base import LOCAL_TZ, DataSource, SourcePaths


@dataclass(frozen=True)
class AccuChekPaths(SourcePaths):
    """Paths for Accu-Chek JSON exports."""

    # root: folder containing accuchek_*.json


class AccuChekSource(DataSource):
    """Accu-Chek JSON reading source."""

    name = "accuchek"

    def newest_json(self) -> Path:
        """Return newest accuchek_*.json by mtime."""
        files = sorted(
            self._paths.root.glob("accuchek_*.json"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )
        if not files:
            raise FileNotFoundError(f"No accuchek_*.json in {self._paths.root}")
        return files[0]

    def input_files(self) -> list[Path]:
        return [self.newest_json()]

    def load_readings(self, path: Path) -> list[GlucoseReading]:
        """Parse Accu-Chek JSON into glucose readings.

        Args:
            path: Path to JSON file.

        Returns:
            Readings sorted by timestamp; items without a glucose value are
            skipped.

        Raises:
            ValueError: If JSON shape is invalid or an item has no timestamp.
        """
        text = path.read_text(encoding="utf-8")
        raw = _extract_json_list(text)
        if not isinstance(raw, list):
            raise ValueError("Accu-Chek JSON must be a list")

        out: list[GlucoseReading] = []
        for item in raw:
            reading = _item_to_reading(item)
            if reading is not None:
                out.append(reading)
        out.sort(key=lambda r: r.measured_at)
        return out


def _parse_tag(item: dict[str, Any]) -> str | None:
    """Extrae y normaliza el tag de un ítem (vacío -> None)."""
    tag_val = item.get("tag")
    if tag_val is None:
        return None
    tag = str(tag_val).strip()
    return tag if tag else None


def _item_to_reading(item: Any) -> GlucoseReading | None:
    """Convierte un ítem dict en GlucoseReading; prefiere mg/dL sobre mmol/L."""
    if not isinstance(item, dict):
        return None
    mg_dl = item.get("mg/dL")
    mmol_l = item.get("mmol/L")
    if mg_dl is not None:
        value, unit = float(mg_dl), "mg/dL"
    elif mmol_l is not None:
        value, unit = float(mmol_l), "mmol/L"
    else:
        return None
    ts = _parse_timestamp(item.get("timestamp"), item.get("epoch"))
    return GlucoseReading(
        measured_at=ts,
        value=value,
        unit=unit,
        context=_parse_tag(item),
    )


def _extract_json_list(text: str) -> Any:
    """Extract JSON array from text, tolerating leading non-JSON (e.g. log lines)."""
    start = text.find("[")
    if start >= 0:
        return json.loads(text[start:])
    return json.loads(text)


def _parse_timestamp(ts_str: Any, epoch: Any) -> datetime:
    """Parses the timestamps to get the date and time."""
    if isinstance(ts_str, str) and ts_str.strip():
        dt = datetime.strptime(ts_str, "%Y/%m/%d %H:%M")
        return dt.replace(tzinfo=LOCAL_TZ)

    if epoch is not None:
        return datetime.fromtimestamp(int(epoch), tz=LOCAL_TZ)

    raise ValueError("Missing timestamp and epoch")
