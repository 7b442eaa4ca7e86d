"""Entity describing a capacity-bounded bucket of entries."""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from .enums import SegmentFamily

ARTIFACT_PREFIX = "sitemap-"
ARTIFACT_SUFFIX = ".xml"


def segment_name_for(family: SegmentFamily, ordinal: int) -> str:
    """Return the segment name for ``ordinal`` inside ``family``.

    Numbered families always carry the ordinal (``companies-1``); the other
    families only do so past the first segment (``locations``, ``locations-2``).
    """

    if ordinal < 1:
        raise ValueError("ordinal must be >= 1")
    if family.is_numbered or ordinal > 1:
        return f"{family.value}-{ordinal}"
    return family.value


def artifact_name_for(segment_name: str) -> str:
    return f"{ARTIFACT_PREFIX}{segment_name}{ARTIFACT_SUFFIX}"


@dataclass(frozen=True)
class Segment:
    """A bucket of entries of one family, materialized as one artifact."""

    name: str
    family: SegmentFamily
    ordinal: int
    capacity: int
    current_count: int = 0
    #: Sticky flag; a full segment never goes back to accepting entries.
    is_full: bool = False
    needs_rebuild: bool = False
    last_generated_at: Optional[datetime] = None
    generated_size_bytes: int = 0
    generation_time_ms: int = 0
    active: bool = True

    @classmethod
    def create(
        cls, family: SegmentFamily, ordinal: int, capacity: int
    ) -> "Segment":
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        return cls(
            name=segment_name_for(family, ordinal),
            family=family,
            ordinal=ordinal,
            capacity=capacity,
        )

    @property
    def available(self) -> int:
        if self.is_full:
            return 0
        return max(self.capacity - self.current_count, 0)

    @property
    def percentage(self) -> float:
        return round(self.current_count / self.capacity * 100, 2)

    @property
    def artifact_name(self) -> str:
        return artifact_name_for(self.name)

    def with_count(self, count: int) -> "Segment":
        """Return a copy holding ``count`` entries, keeping ``is_full`` sticky."""

        return replace(
            self,
            current_count=count,
            is_full=self.is_full or count >= self.capacity,
        )


__all__ = ["Segment", "artifact_name_for", "segment_name_for"]
