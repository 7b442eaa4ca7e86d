"""Persistence contract for segments."""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional

from sitemapper.domain.entities import Segment, SegmentFamily


class SegmentRepository(ABC):
    """Defines storage of segments and their generation stats."""

    @abstractmethod
    def list(
        self, family: SegmentFamily | None = None, *, active_only: bool = True
    ) -> List[Segment]:
        """List segments ordered by family and ordinal."""

    @abstractmethod
    def get(self, name: str) -> Optional[Segment]:
        """Return a segment by its unique name."""

    @abstractmethod
    def add_if_absent(self, segment: Segment) -> Segment:
        """Create ``segment`` unless one with the same name exists; return the stored one."""

    @abstractmethod
    def record_insertions(self, name: str, inserted: int) -> Segment:
        """Add ``inserted`` to the count, refresh ``is_full`` and flag for rebuild."""

    @abstractmethod
    def mark_needs_rebuild(self, names: Iterable[str]) -> None:
        """Flag segments whose artifact is stale."""

    @abstractmethod
    def record_generation(
        self,
        name: str,
        *,
        current_count: int,
        size_bytes: int,
        generation_time_ms: int,
        generated_at: datetime,
    ) -> Segment:
        """Store the result of a successful rebuild and clear ``needs_rebuild``."""
