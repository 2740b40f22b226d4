"""Interfaces de los repositorios externos que alimentan al motor."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Protocol

from salud_insights.model import ConditionName, Measurement, MetricType


class MeasurementRepository(ABC):
    """Source of already-deserialized readings."""

    @abstractmethod
    def fetch_latest(self, user_id: str, metric_type: MetricType) -> Measurement | None:
        """Return the most recent reading, or None if there is none."""

    @abstractmethod
    def fetch_history(
        self, user_id: str, metric_type: MetricType
    ) -> Sequence[Measurement]:
        """Return every reading ascending by ``measured_at``."""


class ConditionRepository(ABC):
    """Source of the user's ongoing conditions."""

    @abstractmethod
    def fetch_active_conditions(self, user_id: str) -> frozenset[ConditionName]:
        """Return the names of the user's ongoing conditions."""


class ProfileRepository(ABC):
    @abstractmethod
    def fetch_height(self, user_id: str) -> float | None:
        """Return the user's height in meters, if known."""


class AsyncMeasurementRepository(Protocol):
    """Asynchronous counterpart used by the snapshot loader."""

    async def fetch_history(
        self, user_id: str, metric_type: MetricType
    ) -> Sequence[Measurement]:
        ...
