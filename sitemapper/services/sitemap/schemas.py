"""Pydantic models exchanged by the sitemap HTTP routes."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, Field

from sitemapper.application import (
    BatchPage,
    BranchCandidate,
    DistributionPlan,
    DistributionSnapshot,
    EntryPage,
    SegmentDetail,
)
from sitemapper.domain import (
    AddMethod,
    Batch,
    ChangeFrequency,
    EntityKind,
    Entry,
    EntryType,
    Initiator,
    RebuildMode,
    SegmentFamily,
)


class IngestPayload(BaseModel):
    """Request to add a batch of catalog entity ids to a family."""

    candidate_ids: list[str]
    family: SegmentFamily
    priority: float | None = None
    change_frequency: ChangeFrequency | None = None
    method: AddMethod = AddMethod.MANUAL
    method_params: Dict[str, Any] = Field(default_factory=dict)
    entry_type: EntryType | None = None
    initiator_id: str | None = None
    initiator_name: str | None = None
    notes: str | None = None
    #: Schedule an incremental rebuild once the batch is stored.
    rebuild: bool = True

    def initiator(self) -> Initiator:
        return Initiator(id=self.initiator_id, name=self.initiator_name)


class IngestPreviewPayload(BaseModel):
    count: int
    family: SegmentFamily


class UpsertPayload(BaseModel):
    """Request mirroring one domain page into the inventory."""

    entry_type: EntryType
    url: str
    related_ids: Dict[str, str] = Field(default_factory=dict)
    active: bool = True
    priority: float | None = None
    change_frequency: ChangeFrequency | None = None
    added_by: str | None = None


class BranchCandidatePayload(BaseModel):
    url: str
    entry_type: EntryType | None = None
    related_ids: Dict[str, str] = Field(default_factory=dict)

    def to_domain(self) -> BranchCandidate:
        return BranchCandidate(
            url=self.url, entry_type=self.entry_type, related_ids=dict(self.related_ids)
        )


class BranchPayload(BaseModel):
    """Enumerated branch URLs, optionally anchored to one catalog entity."""

    family: SegmentFamily = SegmentFamily.CATEGORIES_MIXED
    candidates: list[BranchCandidatePayload | str]
    anchor_kind: EntityKind | None = None
    anchor_id: str | None = None
    added_by: str | None = None

    def to_candidates(self) -> list[BranchCandidate | str]:
        return [
            item.to_domain() if isinstance(item, BranchCandidatePayload) else item
            for item in self.candidates
        ]

    def anchor(self) -> tuple[EntityKind, str] | None:
        if self.anchor_kind is None or not self.anchor_id:
            return None
        return self.anchor_kind, self.anchor_id


class RebuildPayload(BaseModel):
    mode: RebuildMode = RebuildMode.INCREMENTAL
    max_workers: int = Field(default=1, ge=1, le=32)


class CleanupPayload(BaseModel):
    kinds: list[EntityKind] | None = None


class AllocationResponse(BaseModel):
    segment_name: str
    ordinal: int
    allocate: int
    current_count: int
    resulting_count: int
    percentage: float
    will_be_full: bool
    is_new: bool


class PlanResponse(BaseModel):
    family: SegmentFamily
    requested_count: int
    allocations: list[AllocationResponse]

    @classmethod
    def from_domain(cls, plan: DistributionPlan) -> "PlanResponse":
        return cls(
            family=plan.family,
            requested_count=plan.requested_count,
            allocations=[
                AllocationResponse(**allocation.to_mapping())
                for allocation in plan.allocations
            ],
        )


class DistributionResponse(BaseModel):
    total_segments: int
    full_segments: int
    partial_segments: int
    empty_segments: int
    total_urls: int
    available_capacity: int
    next_writable_segment: str | None = None

    @classmethod
    def from_domain(cls, snapshot: DistributionSnapshot) -> "DistributionResponse":
        return cls(**snapshot.to_mapping())


class SegmentResponse(BaseModel):
    name: str
    family: SegmentFamily
    urls_count: int
    capacity: int
    percentage: float
    is_full: bool
    size_bytes: int
    last_generated_at: datetime | None = None
    needs_rebuild: bool

    @classmethod
    def from_domain(cls, detail: SegmentDetail) -> "SegmentResponse":
        return cls(
            name=detail.name,
            family=detail.family,
            urls_count=detail.urls_count,
            capacity=detail.capacity,
            percentage=detail.percentage,
            is_full=detail.is_full,
            size_bytes=detail.size_bytes,
            last_generated_at=detail.last_generated_at,
            needs_rebuild=detail.needs_rebuild,
        )


class BatchResponse(BaseModel):
    batch_number: int
    family: SegmentFamily
    requested_count: int
    method: AddMethod
    method_params: Dict[str, Any]
    distribution_map: Dict[str, int]
    segments_affected: list[str]
    initiator_id: str | None = None
    initiator_name: str | None = None
    status: str
    notes: str | None = None
    added_count: int
    skipped_count: int
    failed_count: int
    created_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_domain(cls, batch: Batch) -> "BatchResponse":
        return cls(
            batch_number=batch.batch_number,
            family=batch.family,
            requested_count=batch.requested_count,
            method=batch.method,
            method_params=batch.method_params,
            distribution_map=batch.distribution_map,
            segments_affected=list(batch.segments_affected),
            initiator_id=batch.initiator_id,
            initiator_name=batch.initiator_name,
            status=batch.status.value,
            notes=batch.notes,
            added_count=batch.added_count,
            skipped_count=batch.skipped_count,
            failed_count=batch.failed_count,
            created_at=batch.created_at,
            completed_at=batch.completed_at,
        )


class BatchListResponse(BaseModel):
    batches: list[BatchResponse]
    total: int
    limit: int
    offset: int
    has_more: bool

    @classmethod
    def from_domain(cls, page: BatchPage) -> "BatchListResponse":
        return cls(
            batches=[BatchResponse.from_domain(batch) for batch in page.batches],
            total=page.total,
            limit=page.limit,
            offset=page.offset,
            has_more=page.has_more,
        )


class EntryResponse(BaseModel):
    url: str
    entry_type: EntryType
    canonical_slug: str
    segment_name: str
    position_in_segment: int
    priority: float
    change_frequency: ChangeFrequency
    references: Dict[str, str | None]
    batch_number: int | None = None
    add_method: AddMethod
    added_by: str | None = None
    active: bool
    last_modified: datetime
    added_at: datetime

    @classmethod
    def from_domain(cls, entry: Entry) -> "EntryResponse":
        return cls(
            url=entry.url,
            entry_type=entry.entry_type,
            canonical_slug=entry.canonical_slug,
            segment_name=entry.segment_name,
            position_in_segment=entry.position_in_segment,
            priority=entry.priority,
            change_frequency=entry.change_frequency,
            references=entry.references.to_mapping(),
            batch_number=entry.batch_number,
            add_method=entry.add_method,
            added_by=entry.added_by,
            active=entry.active,
            last_modified=entry.last_modified,
            added_at=entry.added_at,
        )


class EntryPageResponse(BaseModel):
    entries: list[EntryResponse]
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def from_domain(cls, page: EntryPage) -> "EntryPageResponse":
        return cls(
            entries=[EntryResponse.from_domain(entry) for entry in page.entries],
            page=page.page,
            limit=page.limit,
            total=page.total,
            pages=page.pages,
        )


class StatsResponse(BaseModel):
    total_urls: int
    urls_by_type: Dict[str, int]
    total_segments: int
    segments: list[SegmentResponse]
    distribution: DistributionResponse
    last_batch: BatchResponse | None = None
    total_batches: int
    total_size_bytes: int
    last_full_rebuild_at: datetime | None = None

    @classmethod
    def from_domain(cls, stats: Dict[str, Any]) -> "StatsResponse":
        last_batch = stats.get("last_batch")
        return cls(
            total_urls=stats["total_urls"],
            urls_by_type=stats["urls_by_type"],
            total_segments=stats["total_segments"],
            segments=[SegmentResponse.from_domain(detail) for detail in stats["segments"]],
            distribution=DistributionResponse.from_domain(stats["distribution"]),
            last_batch=BatchResponse.from_domain(last_batch) if last_batch else None,
            total_batches=stats["total_batches"],
            total_size_bytes=stats["total_size_bytes"],
            last_full_rebuild_at=stats.get("last_full_rebuild_at"),
        )


__all__ = [
    "AllocationResponse",
    "BatchListResponse",
    "BatchResponse",
    "BranchCandidatePayload",
    "BranchPayload",
    "CleanupPayload",
    "DistributionResponse",
    "EntryPageResponse",
    "EntryResponse",
    "IngestPayload",
    "IngestPreviewPayload",
    "PlanResponse",
    "RebuildPayload",
    "SegmentResponse",
    "StatsResponse",
    "UpsertPayload",
]
