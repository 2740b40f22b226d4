"""Errores del motor de métricas."""

from __future__ import annotations


class HealthMetricsError(Exception):
    """Base class for engine errors."""


class ValidationError(HealthMetricsError, ValueError):
    """A reading is malformed or physically impossible."""


class UnsupportedUnitError(HealthMetricsError):
    """A unit is not known for the given metric type."""

    def __init__(self, unit: str, metric_type: object) -> None:
        """Create the error.

        Args:
            unit: The offending unit string.
            metric_type: Metric type the unit was given for.
        """
        super().__init__(f"Unsupported unit {unit!r} for {metric_type}")
        self.unit = unit
        self.metric_type = metric_type


class InvalidInputError(HealthMetricsError, ValueError):
    """Derived metric requested with non-positive inputs."""
