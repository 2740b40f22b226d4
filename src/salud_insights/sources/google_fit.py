"""Lectura del peso diario desde Google Fit Takeout."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import cast

import pandas as pd

from salud_insights.model import WeightReading
from salud_insights.sources.base import LOCAL_TZ, DataSource, SourcePaths

_METRICS_DIR = "Métricas de actividad diaria"


@dataclass(frozen=True)
class GoogleFitPaths(SourcePaths):
    """Paths for Google Fit Takeout/Fit directory."""

    # root: .../Takeout/Fit


class GoogleFitSource(DataSource):
    """Google Fit Takeout reader (daily average weight)."""

    name = "google_fit"

    def input_files(self) -> list[Path]:
        """Return per-day CSV files for daily metrics."""
        metrics_dir = self._paths.root / _METRICS_DIR
        if not metrics_dir.exists():
            raise FileNotFoundError(str(metrics_dir))

        files = sorted(
            p
            for p in metrics_dir.glob("*.csv")
            if p.name.lower() != f"{_METRICS_DIR}.csv".lower()
        )
        if files:
            return files
        raise FileNotFoundError(str(metrics_dir))

    def load_weights(self, csv_paths: list[Path]) -> list[WeightReading]:
        """Load one weight reading per day from per-day CSVs.

        Days without a weight column or value are skipped. Each reading is
        stamped at local midnight of its day.
        """
        out: list[WeightReading] = []
        for csv_path in csv_paths:
            file_date = _date_from_filename(csv_path)
            if not file_date:
                continue
            df = pd.read_csv(csv_path)
            weight = _daily_weight(df)
            if weight is None:
                continue
            measured_at = datetime.combine(file_date, datetime.min.time()).replace(
                tzinfo=LOCAL_TZ
            )
            out.append(
                WeightReading(
                    measured_at=measured_at,
                    value=weight,
                    unit="kg",
                    context="Google Fit",
                )
            )
        out.sort(key=lambda r: r.measured_at)
        return out


def _find_col(columns: list[str], patterns: list[str]) -> str | None:
    for pat in patterns:
        rx = re.compile(pat, re.IGNORECASE)
        for c in columns:
            if rx.search(c):
                return c
    return None


def _daily_weight(df: pd.DataFrame) -> float | None:
    """Promedio del peso medio (kg) del día; None si no hay datos."""
    if df.empty:
        return None

    df = df.rename(columns={c: c.strip() for c in df.columns})
    col = _find_col(
        list(df.columns),
        [r"peso medio", r"average weight", r"\bpeso\b", r"\bweight\b"],
    )
    if not col:
        return None
    result = pd.to_numeric(df[col], errors="coerce").mean()
    if pd.isna(result):
        return None
    return round(float(result), 2)


def _date_from_filename(path: Path) -> date | None:
    match = re.match(r"(\d{4}-\d{2}-\d{2})", path.stem)
    if not match:
        return None
    parsed = pd.to_datetime(match.group(1), errors="coerce")
    if pd.isna(parsed):
        return None
    return cast(date, parsed.date())
