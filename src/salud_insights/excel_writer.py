"""Generación de Excel formateado para entrega médica."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, Side

from salud_insights.model import Insight

_DIA_SEMANA: tuple[str, ...] = ("lun", "mar", "mie", "jue", "vie", "sab", "dom")

_HEADER_MAP: dict[str, str] = {
    "weekday": "Día",
    "datetime": "Fecha / Hora",
    "metric_type": "Métrica",
    "value": "Valor",
    "systolic": "Sistólica",
    "diastolic": "Diastólica",
    "pulse": "Pulso",
    "unit": "Unidad",
    "context": "Contexto",
    "category": "Categoría",
}

_INSIGHT_COLUMNS: tuple[str, ...] = (
    "Severidad",
    "Métrica",
    "Título",
    "Descripción",
    "Valor",
    "Tendencia",
)


@dataclass(frozen=True)
class ExcelLayout:
    """Layout/formatting configuration for the doctor workbook."""

    readings_sheet: str = "Mediciones"
    insights_sheet: str = "Resumen"


def _weekday_label(i: object) -> str:
    """Convierte índice 0-6 (lunes-domingo) a etiqueta de 3 letras."""
    try:
        if i is None or (isinstance(i, float) and pd.isna(i)):
            return ""
        if isinstance(i, int | float):
            idx = int(i)
            return _DIA_SEMANA[idx] if 0 <= idx < 7 else ""
        return ""
    except (ValueError, TypeError):
        return ""


def _add_weekday_column(export_df: pd.DataFrame) -> pd.DataFrame:
    """Añade columna weekday (Día) a partir de date o datetime."""
    if "date" in export_df.columns:
        weekday_series = pd.to_datetime(export_df["date"]).dt.weekday
    elif "datetime" in export_df.columns:
        weekday_series = pd.to_datetime(export_df["datetime"]).dt.weekday
    else:
        return export_df
    if weekday_series.empty:
        return export_df
    export_df = export_df.copy()
    export_df["weekday"] = weekday_series.map(_weekday_label)
    cols = ["weekday"] + [c for c in export_df.columns if c != "weekday"]
    return export_df[cols]


def _prepare_readings(df: pd.DataFrame) -> pd.DataFrame:
    """Quita timezone de datetime y deja solo las columnas del informe."""
    export_df = df.copy()
    if "datetime" in export_df.columns:
        stamps = pd.to_datetime(export_df["datetime"], errors="coerce")
        if stamps.dt.tz is not None:
            stamps = stamps.dt.tz_localize(None)
        export_df["datetime"] = stamps
    export_df = _add_weekday_column(export_df)
    keep = [c for c in _HEADER_MAP if c in export_df.columns]
    return export_df[keep].rename(columns=_HEADER_MAP)


def insights_to_frame(insights: Sequence[Insight]) -> pd.DataFrame:
    """One row per insight, in the given (ranked) order."""
    rows = [
        (
            i.severity.value,
            i.source_metric_type.value,
            i.title,
            i.description,
            i.metric_label,
            i.trend.value,
        )
        for i in insights
    ]
    return pd.DataFrame(rows, columns=list(_INSIGHT_COLUMNS))


def write_report_xlsx(
    readings: pd.DataFrame,
    insights: Sequence[Insight],
    out_path: Path,
    layout: ExcelLayout,
) -> None:
    """Write a formatted Excel file suitable for printing.

    Args:
        readings: Readings frame (see ``summary.series_to_frame``).
        insights: Ranked insights for the summary sheet.
        out_path: Output path for the XLSX file.
        layout: Excel layout parameters.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)

    readings_df = _prepare_readings(readings)
    insights_df = insights_to_frame(insights)

    with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
        insights_df.to_excel(writer, index=False, sheet_name=layout.insights_sheet)
        readings_df.to_excel(writer, index=False, sheet_name=layout.readings_sheet)
        _format_sheet(writer.book[layout.insights_sheet])
        _format_sheet(writer.book[layout.readings_sheet])


def _style_header_row(ws: Any) -> None:
    """Aplica fuente negrita, alineación y borde a la fila de cabecera."""
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    header_font = Font(bold=True)
    center = Alignment(horizontal="center", vertical="center", wrap_text=True)
    for cell in ws[1]:
        cell.font = header_font
        cell.alignment = center
        cell.border = border


def _style_body_rows(ws: Any) -> None:
    """Aplica alineación y borde a las filas de datos."""
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    center = Alignment(horizontal="center", vertical="center", wrap_text=True)
    for row in ws.iter_rows(min_row=2):
        for cell in row:
            cell.alignment = center
            cell.border = border


def _get_header_col_index(ws: Any) -> dict[str, int]:
    """Devuelve mapa nombre de cabecera -> índice de columna (1-based)."""
    headers = [str(cell.value) for cell in ws[1]]
    return {name: idx + 1 for idx, name in enumerate(headers)}


def _apply_column_widths(ws: Any, col_index: dict[str, int]) -> None:
    """Establece anchos de columna para evitar ###."""
    widths = [
        ("Día", 6),
        ("Fecha / Hora", 18),
        ("Métrica", 14),
        ("Valor", 18),
        ("Sistólica", 10),
        ("Diastólica", 10),
        ("Pulso", 8),
        ("Unidad", 8),
        ("Contexto", 16),
        ("Categoría", 12),
        ("Severidad", 10),
        ("Título", 24),
        ("Descripción", 60),
        ("Tendencia", 10),
    ]
    for header, width in widths:
        idx = col_index.get(header)
        if idx is not None:
            letter = ws.cell(row=1, column=idx).column_letter
            ws.column_dimensions[letter].width = width


def _apply_number_formats(ws: Any, col_index: dict[str, int]) -> None:
    """Aplica formatos numéricos por cabecera."""
    fmt_map: dict[str, str] = {
        "Fecha / Hora": "dd/mm/yyyy hh:mm",
        "Sistólica": "0",
        "Diastólica": "0",
        "Pulso": "0",
    }
    if "Unidad" in col_index:
        fmt_map["Valor"] = "0.0"
    for row in ws.iter_rows(min_row=2):
        for header, fmt in fmt_map.items():
            idx = col_index.get(header)
            if idx is not None:
                row[idx - 1].number_format = fmt


def _format_sheet(ws: Any) -> None:
    """Apply borders, widths and number formats to a worksheet.

    Args:
        ws: openpyxl worksheet.
    """
    _style_header_row(ws)
    _style_body_rows(ws)
    col_index = _get_header_col_index(ws)
    _apply_column_widths(ws, col_index)
    _apply_number_formats(ws, col_index)
