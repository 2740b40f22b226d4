"""Carga asíncrona e independiente por tipo de métrica.

Cada tipo se pide por separado; el que falla queda ausente y el resto se usa
igual.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import structlog

from salud_insights.engine import HealthSnapshot
from salud_insights.model import Measurement, MetricType
from salud_insights.repository import AsyncMeasurementRepository, MeasurementRepository
from salud_insights.series import MeasurementSeries

logger = structlog.get_logger(__name__)


class ThreadedMeasurementRepository:
    """Expose a blocking repository through the async interface."""

    def __init__(self, repository: MeasurementRepository) -> None:
        self._repository = repository

    async def fetch_history(
        self, user_id: str, metric_type: MetricType
    ) -> Sequence[Measurement]:
        return await asyncio.to_thread(
            self._repository.fetch_history, user_id, metric_type
        )


async def load_snapshot(
    repository: AsyncMeasurementRepository,
    user_id: str,
    *,
    height_m: float | None = None,
) -> HealthSnapshot:
    """Fetch every metric type concurrently and build a snapshot.

    Args:
        repository: Async measurement source.
        user_id: User to load.
        height_m: Profile height to carry into the snapshot.

    Returns:
        Snapshot holding the types that arrived; the result does not depend
        on the order in which fetches complete.
    """
    metrics = list(MetricType)
    results = await asyncio.gather(
        *(repository.fetch_history(user_id, metric) for metric in metrics),
        return_exceptions=True,
    )
    series: dict[MetricType, MeasurementSeries] = {}
    for metric, result in zip(metrics, results):
        if isinstance(result, Exception):
            logger.warning(
                "snapshot_fetch_failed",
                user_id=user_id,
                metric_type=metric.value,
                error=str(result),
            )
            continue
        if isinstance(result, BaseException):
            raise result
        readings = [r for r in result if r.metric_type is metric]
        if not readings:
            continue
        series[metric] = MeasurementSeries.from_readings(user_id, metric, readings)
    return HealthSnapshot(user_id=user_id, series=series, height_m=height_m)
