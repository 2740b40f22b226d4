"""Persistencia SQLite para configuracion, mediciones, condiciones y perfiles."""

from __future__ import annotations

import json
import math
import sqlite3
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from hashlib import sha256
from pathlib import Path

import structlog

from salud_insights.constants import DEFAULT_HEIGHT_M
from salud_insights.errors import InvalidInputError, ValidationError
from salud_insights.model import (
    BloodPressureReading,
    Condition,
    ConditionName,
    ConditionSeverity,
    ConditionStatus,
    GlucoseReading,
    Measurement,
    MetricType,
    WeightReading,
    parse_condition_name,
)
from salud_insights.repository import (
    ConditionRepository,
    MeasurementRepository,
    ProfileRepository,
)
from salud_insights.series import MeasurementSeries, validate_reading

logger = structlog.get_logger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS app_config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS import_runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    created_at TEXT NOT NULL,
    user_id TEXT NOT NULL,
    source TEXT NOT NULL,
    source_file TEXT,
    rows_count INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS measurements (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id INTEGER,
    row_hash TEXT,
    user_id TEXT NOT NULL,
    metric_type TEXT NOT NULL,
    measured_at TEXT NOT NULL,
    value REAL,
    unit TEXT NOT NULL,
    systolic REAL,
    diastolic REAL,
    pulse REAL,
    context TEXT,
    FOREIGN KEY(run_id) REFERENCES import_runs(id)
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_measurements_row_hash_unique
ON measurements(row_hash);

CREATE INDEX IF NOT EXISTS idx_measurements_user_metric
ON measurements(user_id, metric_type);

CREATE TABLE IF NOT EXISTS conditions (
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    status TEXT NOT NULL,
    severity TEXT NOT NULL,
    PRIMARY KEY(user_id, name)
);

CREATE TABLE IF NOT EXISTS profiles (
    user_id TEXT PRIMARY KEY,
    height_m REAL
);
"""


@dataclass(frozen=True)
class AppConfig:
    """Configuracion persistida de la app."""

    accuchek_root: str
    fit_root: str
    export_dir: str
    default_height_m: float = DEFAULT_HEIGHT_M


class SQLiteStore(MeasurementRepository, ConditionRepository, ProfileRepository):
    """Repositorio SQLite para mediciones, condiciones y perfil."""

    def __init__(self, db_path: Path) -> None:
        """Create store and ensure schema exists."""
        self._db_path = db_path
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    def load_config(self) -> AppConfig:
        """Devuelve configuracion guardada o defaults."""
        defaults = {
            "accuchek_root": "",
            "fit_root": "",
            "export_dir": "",
            "default_height_m": str(DEFAULT_HEIGHT_M),
        }
        with self._connect() as conn:
            rows = conn.execute("SELECT key, value FROM app_config").fetchall()
        values = {row["key"]: row["value"] for row in rows}
        merged = {**defaults, **values}
        return AppConfig(
            accuchek_root=merged["accuchek_root"],
            fit_root=merged["fit_root"],
            export_dir=merged["export_dir"],
            default_height_m=_parse_height(merged["default_height_m"]),
        )

    def save_config(self, config: AppConfig) -> None:
        """Guarda la configuracion en tabla key/value."""
        payload = {
            "accuchek_root": config.accuchek_root,
            "fit_root": config.fit_root,
            "export_dir": config.export_dir,
            "default_height_m": json.dumps(config.default_height_m),
        }
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO app_config(key, value) VALUES(?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                payload.items(),
            )
            conn.commit()

    def save_measurement(self, user_id: str, reading: Measurement) -> None:
        """Store one manually logged reading.

        Manual readings are never deduplicated: two identical entries are two
        readings.

        Raises:
            ValidationError: If the reading is invalid or its timestamp has no
                timezone.
        """
        _validate_stored(reading)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO measurements(
                    run_id, row_hash, user_id, metric_type, measured_at, value,
                    unit, systolic, diastolic, pulse, context
                ) VALUES (NULL, NULL, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (user_id, *_reading_values(reading)),
            )
            conn.commit()

    def save_measurements(
        self,
        user_id: str,
        readings: Iterable[Measurement],
        *,
        source: str,
        source_file: str | None = None,
    ) -> int | None:
        """Guarda una importacion. Devuelve run_id o None si no hay filas nuevas.

        Invalid readings are skipped; readings already imported (same user and
        identical values) are not stored again.
        """
        rows: list[tuple[object, ...]] = []
        for reading in readings:
            try:
                _validate_stored(reading)
            except ValueError as exc:
                logger.warning(
                    "reading_rejected",
                    user_id=user_id,
                    source=source,
                    measured_at=str(reading.measured_at),
                    error=str(exc),
                )
                continue
            values = (user_id, *_reading_values(reading))
            rows.append((_row_hash(values), *values))

        created_at = datetime.now().isoformat(timespec="seconds")
        with self._connect() as conn:
            existing_hashes = _existing_hashes(conn, [row[0] for row in rows])
            new_rows: list[tuple[object, ...]] = []
            for row in rows:
                if row[0] not in existing_hashes:
                    existing_hashes.add(str(row[0]))
                    new_rows.append(row)
            if not new_rows:
                return None

            cur = conn.execute(
                """
                INSERT INTO import_runs(
                    created_at, user_id, source, source_file, rows_count
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (created_at, user_id, source, source_file, len(new_rows)),
            )
            run_id = int(cur.lastrowid or 0)
            conn.executemany(
                """
                INSERT INTO measurements(
                    run_id, row_hash, user_id, metric_type, measured_at, value,
                    unit, systolic, diastolic, pulse, context
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [(run_id, *row) for row in new_rows],
            )
            conn.commit()
        logger.info(
            "measurements_imported",
            user_id=user_id,
            source=source,
            run_id=run_id,
            rows=len(new_rows),
        )
        return run_id

    def fetch_history(
        self, user_id: str, metric_type: MetricType
    ) -> Sequence[Measurement]:
        """Lecturas del usuario, ascendentes por fecha (empates en orden de carga)."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT
                    metric_type, measured_at, value, unit,
                    systolic, diastolic, pulse, context
                FROM measurements
                WHERE user_id = ? AND metric_type = ?
                ORDER BY id
                """,
                (user_id, metric_type.value),
            ).fetchall()
        readings = [_row_to_reading(row) for row in rows]
        return list(MeasurementSeries.from_readings(user_id, metric_type, readings))

    def fetch_latest(self, user_id: str, metric_type: MetricType) -> Measurement | None:
        history = self.fetch_history(user_id, metric_type)
        return history[-1] if history else None

    def save_condition(self, user_id: str, condition: Condition) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO conditions(user_id, name, status, severity)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(user_id, name) DO UPDATE SET
                    status=excluded.status, severity=excluded.severity
                """,
                (
                    user_id,
                    condition.name.value,
                    condition.status.value,
                    condition.severity.value,
                ),
            )
            conn.commit()

    def fetch_conditions(self, user_id: str) -> list[Condition]:
        """Condiciones del usuario; las filas con valores desconocidos se omiten."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT name, status, severity FROM conditions "
                "WHERE user_id = ? ORDER BY name",
                (user_id,),
            ).fetchall()
        out: list[Condition] = []
        for row in rows:
            try:
                out.append(
                    Condition(
                        name=parse_condition_name(row["name"]),
                        status=ConditionStatus(row["status"]),
                        severity=ConditionSeverity(row["severity"]),
                    )
                )
            except ValueError as exc:
                logger.warning("condition_row_skipped", user_id=user_id, error=str(exc))
        return out

    def fetch_active_conditions(self, user_id: str) -> frozenset[ConditionName]:
        return frozenset(c.name for c in self.fetch_conditions(user_id))

    def save_height(self, user_id: str, height_m: float) -> None:
        """Guarda la altura (m) del usuario.

        Raises:
            InvalidInputError: If the height is not a positive number.
        """
        if not isinstance(height_m, int | float) or not math.isfinite(height_m):
            raise InvalidInputError(f"Invalid height: {height_m!r}")
        if height_m <= 0:
            raise InvalidInputError(f"Invalid height: {height_m!r}")
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO profiles(user_id, height_m) VALUES (?, ?)
                ON CONFLICT(user_id) DO UPDATE SET height_m=excluded.height_m
                """,
                (user_id, height_m),
            )
            conn.commit()

    def fetch_height(self, user_id: str) -> float | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT height_m FROM profiles WHERE user_id = ?", (user_id,)
            ).fetchone()
        if row is None or row["height_m"] is None:
            return None
        return float(row["height_m"])

    def latest_run_id(self) -> int | None:
        """Obtiene id de la importacion mas reciente."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id FROM import_runs ORDER BY id DESC LIMIT 1"
            ).fetchone()
        if row is None:
            return None
        return int(row["id"])


def _parse_height(raw: str) -> float:
    try:
        value = float(json.loads(raw))
    except (json.JSONDecodeError, TypeError, ValueError):
        return DEFAULT_HEIGHT_M
    if not math.isfinite(value) or value <= 0:
        return DEFAULT_HEIGHT_M
    return value


def _validate_stored(reading: Measurement) -> None:
    validate_reading(reading)
    if reading.measured_at.tzinfo is None:
        raise ValidationError("measured_at must carry a timezone")


def _reading_values(reading: Measurement) -> tuple[object, ...]:
    """(metric_type, measured_at, value, unit, systolic, diastolic, pulse, context)."""
    measured_at = reading.measured_at.isoformat()
    if isinstance(reading, BloodPressureReading):
        return (
            reading.metric_type.value,
            measured_at,
            None,
            reading.unit,
            reading.systolic,
            reading.diastolic,
            reading.pulse,
            reading.context,
        )
    return (
        reading.metric_type.value,
        measured_at,
        reading.value,
        reading.unit,
        None,
        None,
        None,
        reading.context,
    )


def _row_to_reading(row: sqlite3.Row) -> Measurement:
    measured_at = datetime.fromisoformat(row["measured_at"])
    metric_type = MetricType(row["metric_type"])
    if metric_type is MetricType.BLOOD_PRESSURE:
        return BloodPressureReading(
            measured_at=measured_at,
            systolic=row["systolic"],
            diastolic=row["diastolic"],
            pulse=row["pulse"],
            unit=row["unit"],
            context=row["context"],
        )
    if metric_type is MetricType.GLUCOSE:
        return GlucoseReading(
            measured_at=measured_at,
            value=row["value"],
            unit=row["unit"],
            context=row["context"],
        )
    return WeightReading(
        measured_at=measured_at,
        value=row["value"],
        unit=row["unit"],
        context=row["context"],
    )


def _row_hash(values: tuple[object, ...]) -> str:
    payload = json.dumps(values, ensure_ascii=True, sort_keys=False, default=str)
    return sha256(payload.encode("utf-8")).hexdigest()


def _existing_hashes(conn: sqlite3.Connection, hashes: list[object]) -> set[str]:
    valid_hashes = [h for h in hashes if isinstance(h, str)]
    if not valid_hashes:
        return set()
    placeholders = ",".join("?" for _ in valid_hashes)
    rows = conn.execute(
        f"SELECT row_hash FROM measurements WHERE row_hash IN ({placeholders})",
        tuple(valid_hashes),
    ).fetchall()
    return {str(row["row_hash"]) for row in rows if row["row_hash"]}
