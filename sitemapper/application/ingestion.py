"""Bulk ingestion of entity ids into capacity-bounded segments."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sitemapper.domain import (
    AddMethod,
    Batch,
    BatchRepository,
    BatchStatus,
    ChangeFrequency,
    ConfigRepository,
    DomainCatalog,
    EntityKind,
    Entry,
    EntryReferences,
    EntryRepository,
    EntryType,
    IngestionFailedError,
    Initiator,
    SegmentFamily,
    SegmentRepository,
    ValidationError,
    reference_field,
)
from sitemapper.domain.rules import (
    PRIMARY_KIND_FOR_TYPE,
    defaults_for,
    ingest_type_for,
    parse_change_frequency,
    validate_priority,
)

from .distributor import DistributionPlan, SegmentAllocation, SegmentDistributor
from .locks import LockRegistry
from .totals import refresh_totals
from .urls import build_url


@dataclass(frozen=True)
class IngestResult:
    """Summary of one ingestion batch."""

    batch_number: int
    status: BatchStatus
    requested_count: int
    added_count: int
    skipped_count: int
    failed_count: int
    segments_affected: Tuple[str, ...]
    #: Segments that actually received new rows and are now dirty.
    segments_written: Tuple[str, ...] = ()
    failed_segments: Tuple[str, ...] = ()
    distribution_map: Dict[str, int] = field(default_factory=dict)

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "batch_number": self.batch_number,
            "status": self.status.value,
            "requested_count": self.requested_count,
            "added_count": self.added_count,
            "skipped_count": self.skipped_count,
            "failed_count": self.failed_count,
            "segments_affected": list(self.segments_affected),
            "segments_written": list(self.segments_written),
            "failed_segments": list(self.failed_segments),
            "distribution_map": dict(self.distribution_map),
        }


@dataclass(frozen=True)
class _SliceTemplate:
    entry_type: EntryType
    kind: EntityKind
    priority: float
    change_frequency: ChangeFrequency
    batch_number: int
    method: AddMethod
    added_by: Optional[str]


class IngestionService:
    """Writes batches of catalog entities into the entry inventory.

    Ingestion never triggers a rebuild by itself; callers schedule an
    incremental rebuild once :meth:`ingest` returns, using
    :attr:`IngestResult.segments_written` to know whether one is needed.
    """

    def __init__(
        self,
        entries: EntryRepository,
        segments: SegmentRepository,
        batches: BatchRepository,
        config: ConfigRepository,
        catalog: DomainCatalog,
        *,
        base_url: str,
        distributor: SegmentDistributor | None = None,
        locks: LockRegistry | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Configure the service.

        Args:
            entries: Store of entries.
            segments: Store of segments.
            batches: Ledger receiving one record per ingestion.
            config: Global configuration holding capacities and totals.
            catalog: Source of canonical slugs and active flags.
            base_url: Absolute site URL prepended to every slug.
            distributor: Planner packing ids into segments; built from the
                stores when omitted.
            locks: Registry shared with the other writers of the same
                stores.
            logger: Logger receiving progress messages.
        """

        self._entries = entries
        self._segments = segments
        self._batches = batches
        self._config = config
        self._catalog = catalog
        self._base_url = base_url
        self._distributor = distributor or SegmentDistributor(segments, config)
        self._locks = locks or LockRegistry()
        self._logger = logger or logging.getLogger("sitemapper.ingestion")

    def preview(self, count: int, family: SegmentFamily) -> DistributionPlan:
        """Return the plan an ingestion of ``count`` ids would follow."""

        return self._distributor.plan(count, family)

    def ingest(
        self,
        candidate_ids: Sequence[str],
        family: SegmentFamily,
        *,
        priority: float | None = None,
        change_frequency: ChangeFrequency | str | None = None,
        method: AddMethod = AddMethod.MANUAL,
        method_params: Mapping[str, Any] | None = None,
        initiator: Initiator | None = None,
        entry_type: EntryType | None = None,
        notes: str | None = None,
    ) -> IngestResult:
        """Ingest ``candidate_ids`` into ``family``.

        Args:
            candidate_ids: Ids of catalog entities, in the order they should
                be positioned.
            family: Target segment family.
            priority: Crawl priority; the entry type default when omitted.
            change_frequency: Change frequency; the entry type default when
                omitted.
            method: Selection method recorded on the batch and its entries.
            method_params: Free-form parameters of the selection method.
            initiator: Actor that requested the batch.
            entry_type: Entry type produced, when the family accepts more
                than one (``locations`` defaults to ``CITY``).
            notes: Free text stored on the batch.

        Returns:
            An :class:`IngestResult` with the batch counters.

        Raises:
            ValidationError: When the list is empty or a parameter is out of
                range; nothing is written in that case.
            IngestionFailedError: When every slice failed; the batch is
                recorded as ``FAILED`` first.
        """

        ids = [str(candidate) for candidate in candidate_ids]
        if not ids:
            raise ValidationError("candidate_ids must not be empty")

        resolved_type = ingest_type_for(family, entry_type)
        defaults = defaults_for(resolved_type)
        resolved_priority = validate_priority(
            defaults.priority if priority is None else priority
        )
        resolved_frequency = parse_change_frequency(
            change_frequency or defaults.change_frequency
        )
        kind = PRIMARY_KIND_FOR_TYPE[resolved_type]
        initiator = initiator or Initiator()

        with self._locks.family(family):
            plan = self._distributor.plan(len(ids), family)
            batch_number = self._batches.next_batch_number()
            self._batches.add(
                Batch(
                    batch_number=batch_number,
                    family=family,
                    requested_count=len(ids),
                    method=method,
                    distribution_map=plan.distribution_map,
                    segments_affected=plan.segments_affected,
                    method_params=dict(method_params or {}),
                    initiator_id=initiator.id,
                    initiator_name=initiator.name,
                    notes=notes,
                )
            )
            self._logger.info(
                "Batch %s: ingesting %s %s ids into %s segment(s)",
                batch_number,
                len(ids),
                family.value,
                len(plan.allocations),
            )

            template = _SliceTemplate(
                entry_type=resolved_type,
                kind=kind,
                priority=resolved_priority,
                change_frequency=resolved_frequency,
                batch_number=batch_number,
                method=method,
                added_by=initiator.id or initiator.name,
            )
            added = skipped = failed = 0
            written: List[str] = []
            failed_segments: List[str] = []
            offset = 0
            for allocation in plan.allocations:
                slice_ids = ids[offset : offset + allocation.allocate]
                offset += allocation.allocate
                try:
                    inserted = self._ingest_slice(allocation, slice_ids, template)
                except Exception:
                    # Committed slices stay valid; this one is retried by the caller.
                    self._logger.exception(
                        "Batch %s: slice for segment %s failed",
                        batch_number,
                        allocation.segment_name,
                    )
                    failed += len(slice_ids)
                    failed_segments.append(allocation.segment_name)
                    continue
                added += inserted
                skipped += len(slice_ids) - inserted
                if inserted:
                    written.append(allocation.segment_name)

            all_failed = bool(failed_segments) and failed == len(ids)
            status = BatchStatus.FAILED if all_failed else BatchStatus.COMPLETED
            self._batches.finalize(
                batch_number,
                status=status,
                added_count=added,
                skipped_count=skipped,
                failed_count=failed,
                completed_at=datetime.now(timezone.utc),
            )

        refresh_totals(self._entries, self._segments, self._config)

        self._logger.info(
            "Batch %s %s: added=%s skipped=%s failed=%s",
            batch_number,
            status.value,
            added,
            skipped,
            failed,
        )
        if all_failed:
            raise IngestionFailedError(
                batch_number,
                f"Batch {batch_number} failed for every segment: "
                + ", ".join(failed_segments),
            )

        return IngestResult(
            batch_number=batch_number,
            status=status,
            requested_count=len(ids),
            added_count=added,
            skipped_count=skipped,
            failed_count=failed,
            segments_affected=plan.segments_affected,
            segments_written=tuple(written),
            failed_segments=tuple(failed_segments),
            distribution_map=plan.distribution_map,
        )

    def _ingest_slice(
        self,
        allocation: SegmentAllocation,
        slice_ids: Sequence[str],
        template: _SliceTemplate,
    ) -> int:
        """Insert the new ids of one slice and return how many rows were added."""

        unique_ids = list(dict.fromkeys(slice_ids))
        already_active = self._entries.active_reference_ids(template.kind, unique_ids)
        pending = [entity_id for entity_id in unique_ids if entity_id not in already_active]
        if not pending:
            return 0

        entities = self._catalog.get_entities(template.kind, pending)
        candidates: Dict[str, Tuple[str, Any]] = {}
        for entity_id in pending:
            entity = entities.get(entity_id)
            if entity is None or not entity.is_active:
                self._logger.warning(
                    "Skipping %s '%s': absent or inactive in catalog",
                    template.kind.value,
                    entity_id,
                )
                continue
            url = build_url(self._base_url, entity.canonical_slug)
            candidates.setdefault(url, (entity_id, entity))

        # Inactive rows keep their url; they come back only through an upsert.
        stored = self._entries.existing_urls(candidates)
        fresh = [(url, value) for url, value in candidates.items() if url not in stored]
        if not fresh:
            return 0

        with self._locks.segment(allocation.segment_name):
            if allocation.is_new:
                segment = self._segments.add_if_absent(allocation.to_segment())
            else:
                segment = self._segments.get(allocation.segment_name)
                if segment is None:
                    raise LookupError(f"Segment '{allocation.segment_name}' not found")
            if len(fresh) > segment.available:
                raise RuntimeError(
                    f"Segment '{segment.name}' has {segment.available} free slot(s), "
                    f"{len(fresh)} required"
                )

            now = datetime.now(timezone.utc)
            rows = [
                Entry(
                    url=url,
                    entry_type=template.entry_type,
                    canonical_slug=entity.canonical_slug,
                    segment_name=segment.name,
                    position_in_segment=segment.current_count + index + 1,
                    priority=template.priority,
                    change_frequency=template.change_frequency,
                    references=_references_for(template.kind, entity_id, entity.related),
                    batch_number=template.batch_number,
                    add_method=template.method,
                    added_by=template.added_by,
                    last_modified=entity.last_modified_at or now,
                    added_at=now,
                )
                for index, (url, (entity_id, entity)) in enumerate(fresh)
            ]
            inserted = self._entries.insert_many(rows)
            if inserted:
                self._segments.record_insertions(segment.name, inserted)
        return inserted


def _references_for(
    kind: EntityKind, entity_id: str, related: Mapping[str, str]
) -> EntryReferences:
    values = dict(related)
    values[reference_field(kind)] = entity_id
    return EntryReferences.from_mapping(values)


__all__ = ["IngestResult", "IngestionService"]
