"""Thread-safe in-memory implementations of the sitemap repositories."""
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from sitemapper.domain import (
    Batch,
    BatchRepository,
    BatchStatus,
    ConfigRepository,
    EntityKind,
    Entry,
    EntryQuery,
    EntryRepository,
    EntryType,
    GlobalConfig,
    Segment,
    SegmentFamily,
    SegmentRepository,
    ValidationError,
    default_capacities,
)


class InMemoryEntryRepository(EntryRepository):
    """Keeps entries in a dict keyed by URL, preserving insertion order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, Entry] = {}

    def insert_many(self, entries: Sequence[Entry]) -> int:
        inserted = 0
        with self._lock:
            for entry in entries:
                if entry.url in self._entries:
                    continue
                self._entries[entry.url] = entry
                inserted += 1
        return inserted

    def get_by_url(self, url: str) -> Optional[Entry]:
        with self._lock:
            return self._entries.get(url)

    def replace(self, entry: Entry) -> None:
        with self._lock:
            self._entries[entry.url] = entry

    def existing_urls(self, urls: Iterable[str], *, active_only: bool = False) -> Set[str]:
        with self._lock:
            return {
                url
                for url in urls
                if url in self._entries
                and (self._entries[url].active or not active_only)
            }

    def active_reference_ids(self, kind: EntityKind, ids: Iterable[str]) -> Set[str]:
        wanted = set(ids)
        with self._lock:
            return {
                entry.references.get(kind)
                for entry in self._entries.values()
                if entry.active and entry.references.get(kind) in wanted
            }

    def deactivate_url(self, url: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(url)
            if entry is None or not entry.active:
                return None
            self._entries[url] = entry.deactivated()
            return entry.segment_name

    def unlisted_references(
        self, kind: EntityKind, active_ids: Set[str]
    ) -> Dict[str, Set[str]]:
        unlisted: Dict[str, Set[str]] = {}
        with self._lock:
            for entry in self._entries.values():
                reference = entry.references.get(kind)
                if not entry.active or reference is None or reference in active_ids:
                    continue
                unlisted.setdefault(entry.segment_name, set()).add(reference)
        return unlisted

    def deactivate_references(
        self, kind: EntityKind, segment_name: str, ids: Iterable[str]
    ) -> int:
        wanted = set(ids)
        count = 0
        with self._lock:
            for url, entry in list(self._entries.items()):
                if (
                    entry.active
                    and entry.segment_name == segment_name
                    and entry.references.get(kind) in wanted
                ):
                    self._entries[url] = entry.deactivated()
                    count += 1
        return count

    def list_active_in_segment(self, segment_name: str) -> List[Entry]:
        with self._lock:
            rows = [
                entry
                for entry in self._entries.values()
                if entry.segment_name == segment_name and entry.active
            ]
        return sorted(rows, key=lambda entry: entry.position_in_segment)

    def count_in_segment(self, segment_name: str) -> int:
        with self._lock:
            return sum(
                1 for entry in self._entries.values() if entry.segment_name == segment_name
            )

    def count_active(self, entry_type: EntryType | None = None) -> int:
        with self._lock:
            return sum(
                1
                for entry in self._entries.values()
                if entry.active and (entry_type is None or entry.entry_type is entry_type)
            )

    def search(
        self, query: EntryQuery, *, offset: int, limit: int
    ) -> Tuple[List[Entry], int]:
        needle = (query.search or "").lower()
        with self._lock:
            rows = [
                entry
                for entry in self._entries.values()
                if entry.active
                and (query.entry_type is None or entry.entry_type is query.entry_type)
                and (not query.segment_name or entry.segment_name == query.segment_name)
                and (
                    not needle
                    or needle in entry.url.lower()
                    or needle in entry.canonical_slug.lower()
                )
            ]
        rows.sort(key=lambda entry: entry.url)
        rows.sort(key=lambda entry: entry.added_at, reverse=True)
        return rows[offset : offset + limit], len(rows)


class InMemorySegmentRepository(SegmentRepository):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._segments: Dict[str, Segment] = {}

    def list(
        self, family: SegmentFamily | None = None, *, active_only: bool = True
    ) -> List[Segment]:
        with self._lock:
            rows = [
                segment
                for segment in self._segments.values()
                if (family is None or segment.family is family)
                and (segment.active or not active_only)
            ]
        return sorted(rows, key=lambda segment: (segment.family.value, segment.ordinal))

    def get(self, name: str) -> Optional[Segment]:
        with self._lock:
            return self._segments.get(name)

    def add_if_absent(self, segment: Segment) -> Segment:
        with self._lock:
            return self._segments.setdefault(segment.name, segment)

    def record_insertions(self, name: str, inserted: int) -> Segment:
        with self._lock:
            segment = self._require(name)
            updated = replace(
                segment.with_count(segment.current_count + inserted), needs_rebuild=True
            )
            self._segments[name] = updated
            return updated

    def mark_needs_rebuild(self, names: Iterable[str]) -> None:
        with self._lock:
            for name in names:
                segment = self._segments.get(name)
                if segment is not None:
                    self._segments[name] = replace(segment, needs_rebuild=True)

    def record_generation(
        self,
        name: str,
        *,
        current_count: int,
        size_bytes: int,
        generation_time_ms: int,
        generated_at: datetime,
    ) -> Segment:
        with self._lock:
            segment = self._require(name)
            updated = replace(
                segment.with_count(current_count),
                generated_size_bytes=size_bytes,
                generation_time_ms=generation_time_ms,
                last_generated_at=generated_at,
                needs_rebuild=False,
            )
            self._segments[name] = updated
            return updated

    def _require(self, name: str) -> Segment:
        segment = self._segments.get(name)
        if segment is None:
            raise LookupError(f"Segment '{name}' not found")
        return segment


class InMemoryBatchRepository(BatchRepository):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._batches: Dict[int, Batch] = {}
        self._counter = 0

    def next_batch_number(self) -> int:
        with self._lock:
            self._counter += 1
            return self._counter

    def add(self, batch: Batch) -> None:
        with self._lock:
            self._batches[batch.batch_number] = batch

    def finalize(
        self,
        batch_number: int,
        *,
        status: BatchStatus,
        added_count: int,
        skipped_count: int,
        failed_count: int,
        completed_at: datetime,
        notes: str | None = None,
    ) -> None:
        with self._lock:
            batch = self._batches.get(batch_number)
            if batch is None:
                raise LookupError(f"Batch {batch_number} not found")
            self._batches[batch_number] = replace(
                batch,
                status=status,
                added_count=added_count,
                skipped_count=skipped_count,
                failed_count=failed_count,
                completed_at=completed_at,
                notes=notes if notes is not None else batch.notes,
            )

    def get(self, batch_number: int) -> Optional[Batch]:
        with self._lock:
            return self._batches.get(batch_number)

    def list_recent(self, *, limit: int, offset: int = 0) -> List[Batch]:
        with self._lock:
            rows = sorted(
                self._batches.values(), key=lambda batch: batch.batch_number, reverse=True
            )
        return rows[offset : offset + limit]

    def count(self) -> int:
        with self._lock:
            return len(self._batches)


class InMemoryConfigRepository(ConfigRepository):
    def __init__(self, capacities: Mapping[SegmentFamily, int] | None = None) -> None:
        self._lock = threading.Lock()
        self._config = GlobalConfig(
            default_capacity_per_family=dict(capacities or default_capacities())
        )

    def get(self) -> GlobalConfig:
        with self._lock:
            return self._config

    def save_totals(self, *, total_urls: int, total_segments: int) -> None:
        with self._lock:
            self._config = replace(
                self._config, total_urls=total_urls, total_segments=total_segments
            )

    def record_full_rebuild(self, at: datetime) -> None:
        with self._lock:
            self._config = replace(self._config, last_full_rebuild_at=at)

    def set_capacity(self, family: SegmentFamily, capacity: int) -> None:
        if capacity <= 0:
            raise ValidationError("capacity must be greater than zero")
        with self._lock:
            capacities = dict(self._config.default_capacity_per_family)
            capacities[family] = capacity
            self._config = replace(self._config, default_capacity_per_family=capacities)


__all__ = [
    "InMemoryBatchRepository",
    "InMemoryConfigRepository",
    "InMemoryEntryRepository",
    "InMemorySegmentRepository",
]
