"""CLI para registrar mediciones, importar exportaciones y ver insights."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

import pandas as pd
import structlog
from dateutil import parser as date_parser

from salud_insights.engine import HealthSnapshot
from salud_insights.errors import HealthMetricsError
from salud_insights.excel_writer import ExcelLayout, write_report_xlsx
from salud_insights.model import (
    BloodPressureReading,
    Condition,
    ConditionSeverity,
    ConditionStatus,
    GlucoseReading,
    Measurement,
    MetricType,
    WeightReading,
    parse_condition_name,
)
from salud_insights.snapshot import ThreadedMeasurementRepository, load_snapshot
from salud_insights.sources.accuchek import AccuChekPaths, AccuChekSource
from salud_insights.sources.base import LOCAL_TZ
from salud_insights.sources.google_fit import GoogleFitPaths, GoogleFitSource
from salud_insights.storage import SQLiteStore
from salud_insights.summary import (
    period_average,
    readings_in_period,
    series_to_frame,
    time_in_range,
)
from salud_insights.units import CANONICAL_UNITS

logger = structlog.get_logger(__name__)

_EMPTY_INSIGHTS = "Log more health data to receive personalized insights."


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argparse namespace.
    """
    parser = argparse.ArgumentParser(
        description="Seguimiento de glucosa, presión arterial y peso con insights."
    )
    parser.add_argument(
        "--db",
        default=str(Path.home() / "proyectos" / "salud" / "salud_insights.sqlite3"),
        help="Base SQLite (default: ~/proyectos/salud/salud_insights.sqlite3).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Importar Accu-Chek y/o Google Fit.")
    imp.add_argument("--user", required=True)
    imp.add_argument("--accuchek", help="Carpeta con accuchek_*.json.")
    imp.add_argument("--fit", help="Carpeta Takeout/Fit.")

    glu = sub.add_parser("log-glucose", help="Registrar una glucemia.")
    glu.add_argument("--user", required=True)
    glu.add_argument("--value", type=float, required=True)
    glu.add_argument("--unit", choices=["mg/dL", "mmol/L"], default="mg/dL")
    glu.add_argument("--context", help="Ej.: antes del desayuno.")
    glu.add_argument("--at", help="Fecha/hora (default: ahora).")

    bp = sub.add_parser("log-bp", help="Registrar una presión arterial.")
    bp.add_argument("--user", required=True)
    bp.add_argument("--systolic", type=float, required=True)
    bp.add_argument("--diastolic", type=float, required=True)
    bp.add_argument("--pulse", type=float)
    bp.add_argument("--context")
    bp.add_argument("--at")

    wt = sub.add_parser("log-weight", help="Registrar un peso.")
    wt.add_argument("--user", required=True)
    wt.add_argument("--value", type=float, required=True)
    wt.add_argument("--unit", choices=["kg", "lb"], default="kg")
    wt.add_argument("--context")
    wt.add_argument("--at")

    cond = sub.add_parser("condition", help="Registrar una condición.")
    cond.add_argument("--user", required=True)
    cond.add_argument("name", help="diabetes | hypertension | obesity")
    cond.add_argument(
        "--status",
        choices=[s.value for s in ConditionStatus],
        default=ConditionStatus.ACTIVE.value,
    )
    cond.add_argument(
        "--severity",
        choices=[s.value for s in ConditionSeverity],
        default=ConditionSeverity.MODERATE.value,
    )

    height = sub.add_parser("height", help="Guardar la altura (m).")
    height.add_argument("--user", required=True)
    height.add_argument("meters", type=float)

    ins = sub.add_parser("insights", help="Mostrar insights ordenados.")
    ins.add_argument("--user", required=True)

    exp = sub.add_parser("export", help="Exportar informe Excel.")
    exp.add_argument("--user", required=True)
    exp.add_argument("--out", help="Directorio de salida.")

    return parser.parse_args(argv)


def _parse_when(raw: str | None) -> datetime:
    if not raw:
        return datetime.now(tz=LOCAL_TZ)
    parsed = date_parser.parse(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=LOCAL_TZ)
    return parsed


def _reading_from_args(ns: argparse.Namespace) -> Measurement:
    measured_at = _parse_when(ns.at)
    if ns.command == "log-glucose":
        return GlucoseReading(measured_at, ns.value, ns.unit, ns.context)
    if ns.command == "log-bp":
        return BloodPressureReading(
            measured_at, ns.systolic, ns.diastolic, ns.pulse, context=ns.context
        )
    return WeightReading(measured_at, ns.value, ns.unit, ns.context)


def _height_for(store: SQLiteStore, user_id: str) -> float:
    height = store.fetch_height(user_id)
    return height if height is not None else store.load_config().default_height_m


def build_snapshot(store: SQLiteStore, user_id: str) -> HealthSnapshot:
    """Load every metric of a user from the store."""
    return asyncio.run(
        load_snapshot(
            ThreadedMeasurementRepository(store),
            user_id,
            height_m=_height_for(store, user_id),
        )
    )


def _run_import(store: SQLiteStore, ns: argparse.Namespace) -> int:
    config = store.load_config()
    acc_root = ns.accuchek or config.accuchek_root
    fit_root = ns.fit or config.fit_root
    if not acc_root and not fit_root:
        print("ERROR: indicar --accuchek y/o --fit")
        return 1

    if acc_root:
        acc = AccuChekSource(AccuChekPaths(root=Path(acc_root).expanduser()))
        acc.validate()
        acc_file = acc.newest_json()
        readings = acc.load_readings(acc_file)
        run_id = store.save_measurements(
            ns.user, readings, source=acc.name, source_file=str(acc_file)
        )
        print(f"OK: AccuChek file: {acc_file}")
        print(f"OK: nuevas lecturas: {'ninguna' if run_id is None else 'si'}")

    if fit_root:
        fit = GoogleFitSource(GoogleFitPaths(root=Path(fit_root).expanduser()))
        fit.validate()
        fit_csvs = fit.input_files()
        weights = fit.load_weights(fit_csvs)
        store.save_measurements(ns.user, weights, source=fit.name)
        print(f"OK: Fit daily CSV files: {len(fit_csvs)}")
        print(f"OK: pesos diarios: {len(weights)}")
    return 0


def _print_summaries(snapshot: HealthSnapshot) -> None:
    for metric_type in MetricType:
        series = snapshot.series_for(metric_type)
        if series.is_empty():
            continue
        avg = period_average(series)
        count = readings_in_period(series)
        if isinstance(avg, tuple):
            avg_text = f"{avg[0]:g}/{avg[1]:g}"
        else:
            avg_text = "-" if avg is None else f"{avg:g}"
        in_range = time_in_range(series, snapshot.height_m)
        in_range_text = "-" if in_range is None else f"{in_range:g}%"
        print(
            f"{metric_type.value}: promedio 7 días {avg_text} "
            f"{CANONICAL_UNITS[metric_type]}, {count} lecturas, "
            f"en rango {in_range_text}"
        )


def _run_insights(store: SQLiteStore, user_id: str) -> int:
    snapshot = build_snapshot(store, user_id)
    insights = snapshot.insights(store.fetch_active_conditions(user_id))
    if not insights:
        print(_EMPTY_INSIGHTS)
        return 0
    for insight in insights:
        print(
            f"[{insight.severity.value}] {insight.title}: "
            f"{insight.metric_label} ({insight.trend.value})"
        )
        print(f"    {insight.description}")
    _print_summaries(snapshot)
    return 0


def _run_export(store: SQLiteStore, user_id: str, out: str | None) -> int:
    snapshot = build_snapshot(store, user_id)
    insights = snapshot.insights(store.fetch_active_conditions(user_id))
    frames = [
        series_to_frame(snapshot.series_for(m), snapshot.height_m) for m in MetricType
    ]
    non_empty = [f for f in frames if not f.empty]
    readings = (
        pd.concat(non_empty, ignore_index=True).sort_values("datetime")
        if non_empty
        else frames[0]
    )

    out_dir = Path(out or store.load_config().export_dir or Path.cwd()).expanduser()
    ts = datetime.now(tz=LOCAL_TZ).strftime("%Y-%m-%d_%H-%M-%S")
    out_path = out_dir / f"salud_informe_{user_id}_{ts}.xlsx"
    write_report_xlsx(readings, insights, out_path, ExcelLayout())
    print(f"OK: Output: {out_path}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI.

    Returns:
        Exit code (0 on success, 1 on rejected input).
    """
    ns = parse_args(argv)
    store = SQLiteStore(Path(ns.db).expanduser().resolve())

    try:
        if ns.command == "import":
            return _run_import(store, ns)
        if ns.command in ("log-glucose", "log-bp", "log-weight"):
            store.save_measurement(ns.user, _reading_from_args(ns))
            print("OK: lectura guardada")
            return 0
        if ns.command == "condition":
            store.save_condition(
                ns.user,
                Condition(
                    name=parse_condition_name(ns.name),
                    status=ConditionStatus(ns.status),
                    severity=ConditionSeverity(ns.severity),
                ),
            )
            print("OK: condición guardada")
            return 0
        if ns.command == "height":
            store.save_height(ns.user, ns.meters)
            print("OK: altura guardada")
            return 0
        if ns.command == "insights":
            return _run_insights(store, ns.user)
        return _run_export(store, ns.user, ns.out)
    except (HealthMetricsError, ValueError) as exc:
        logger.warning("cli_input_rejected", command=ns.command, error=str(exc))
        print(f"ERROR: {exc}")
        return 1
