"""Persistence contract for the global configuration cache."""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from sitemapper.domain.entities import GlobalConfig, SegmentFamily


class ConfigRepository(ABC):
    """Stores the singleton :class:`GlobalConfig`."""

    @abstractmethod
    def get(self) -> GlobalConfig:
        """Return the stored configuration, or defaults when absent."""

    @abstractmethod
    def save_totals(self, *, total_urls: int, total_segments: int) -> None:
        """Refresh the cached inventory totals."""

    @abstractmethod
    def record_full_rebuild(self, at: datetime) -> None:
        """Remember when the last FULL rebuild finished."""

    @abstractmethod
    def set_capacity(self, family: SegmentFamily, capacity: int) -> None:
        """Change the capacity used for segments created from now on."""
