"""Clases base para fuentes de lecturas importables."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from dateutil import tz

LOCAL_TZ = tz.gettz("America/Argentina/Buenos_Aires")


@dataclass(frozen=True)
class SourcePaths:
    """Container for source directories."""

    root: Path


class DataSource(ABC):
    """Abstract file-based reading source."""

    name: str = ""

    def __init__(self, paths: SourcePaths) -> None:
        """Create a data source.

        Args:
            paths: Source paths configuration.
        """
        self._paths = paths

    def validate(self) -> None:
        """Validate that the source directory exists.

        Raises:
            FileNotFoundError: If the root folder is missing.
        """
        if not self._paths.root.exists():
            raise FileNotFoundError(str(self._paths.root))

    @abstractmethod
    def input_files(self) -> list[Path]:
        """Files the next import will read.

        Raises:
            FileNotFoundError: If there is nothing to import.
        """
