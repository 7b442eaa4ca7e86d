"""Read-side queries over segments, batches and entries."""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sitemapper.domain import (
    Batch,
    BatchRepository,
    ConfigRepository,
    EntityNotFoundError,
    Entry,
    EntryQuery,
    EntryRepository,
    EntryType,
    Segment,
    SegmentFamily,
    SegmentRepository,
    ValidationError,
)

MAX_PAGE_SIZE = 500


@dataclass(frozen=True)
class DistributionSnapshot:
    total_segments: int
    full_segments: int
    partial_segments: int
    empty_segments: int
    total_urls: int
    available_capacity: int
    next_writable_segment: Optional[str]

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "total_segments": self.total_segments,
            "full_segments": self.full_segments,
            "partial_segments": self.partial_segments,
            "empty_segments": self.empty_segments,
            "total_urls": self.total_urls,
            "available_capacity": self.available_capacity,
            "next_writable_segment": self.next_writable_segment,
        }


@dataclass(frozen=True)
class SegmentDetail:
    name: str
    family: SegmentFamily
    urls_count: int
    capacity: int
    percentage: float
    is_full: bool
    size_bytes: int
    last_generated_at: Optional[datetime]
    needs_rebuild: bool

    @classmethod
    def from_segment(cls, segment: Segment) -> "SegmentDetail":
        return cls(
            name=segment.name,
            family=segment.family,
            urls_count=segment.current_count,
            capacity=segment.capacity,
            percentage=segment.percentage,
            is_full=segment.is_full,
            size_bytes=segment.generated_size_bytes,
            last_generated_at=segment.last_generated_at,
            needs_rebuild=segment.needs_rebuild,
        )


@dataclass(frozen=True)
class BatchPage:
    batches: List[Batch]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.batches) < self.total


@dataclass(frozen=True)
class EntryPage:
    entries: List[Entry]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


class StatsService:
    """Answers operator questions about the inventory without writing."""

    def __init__(
        self,
        entries: EntryRepository,
        segments: SegmentRepository,
        batches: BatchRepository,
        config: ConfigRepository,
    ) -> None:
        self._entries = entries
        self._segments = segments
        self._batches = batches
        self._config = config

    def distribution_snapshot(
        self, family: SegmentFamily | None = None
    ) -> DistributionSnapshot:
        segments = self._segments.list(family)
        full = [segment for segment in segments if segment.is_full]
        empty = [
            segment
            for segment in segments
            if segment.current_count == 0 and not segment.is_full
        ]
        writable = next((segment for segment in segments if segment.available > 0), None)
        return DistributionSnapshot(
            total_segments=len(segments),
            full_segments=len(full),
            partial_segments=len(segments) - len(full) - len(empty),
            empty_segments=len(empty),
            total_urls=sum(segment.current_count for segment in segments),
            available_capacity=sum(segment.available for segment in segments),
            next_writable_segment=writable.name if writable else None,
        )

    def segment_details(self, family: SegmentFamily | None = None) -> List[SegmentDetail]:
        return [SegmentDetail.from_segment(segment) for segment in self._segments.list(family)]

    def get_stats(self) -> Dict[str, Any]:
        """Collect totals, per-type counts, segments and the latest batch."""

        details = self.segment_details()
        recent = self._batches.list_recent(limit=1)
        config = self._config.get()
        total_size = sum(detail.size_bytes for detail in details)
        return {
            "total_urls": self._entries.count_active(),
            "urls_by_type": {
                entry_type.value: self._entries.count_active(entry_type)
                for entry_type in EntryType
            },
            "total_segments": len(details),
            "segments": details,
            "distribution": self.distribution_snapshot(),
            "last_batch": recent[0] if recent else None,
            "total_batches": self._batches.count(),
            "total_size_bytes": total_size,
            "last_full_rebuild_at": config.last_full_rebuild_at,
        }

    def list_batches(self, *, limit: int = 20, offset: int = 0) -> BatchPage:
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise ValidationError("offset must not be negative")
        return BatchPage(
            batches=self._batches.list_recent(limit=limit, offset=offset),
            total=self._batches.count(),
            limit=limit,
            offset=offset,
        )

    def get_batch(self, batch_number: int) -> Batch:
        batch = self._batches.get(batch_number)
        if batch is None:
            raise EntityNotFoundError(f"Batch {batch_number} not found")
        return batch

    def list_entries(
        self,
        *,
        page: int = 1,
        limit: int = 50,
        entry_type: EntryType | None = None,
        segment_name: str | None = None,
        search: str | None = None,
    ) -> EntryPage:
        if page < 1:
            raise ValidationError("page must be >= 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        query = EntryQuery(
            entry_type=entry_type,
            segment_name=segment_name or None,
            search=(search or "").strip() or None,
        )
        entries, total = self._entries.search(
            query, offset=(page - 1) * limit, limit=limit
        )
        return EntryPage(entries=entries, page=page, limit=limit, total=total)


__all__ = [
    "BatchPage",
    "DistributionSnapshot",
    "EntryPage",
    "SegmentDetail",
    "StatsService",
]
