"""Regeneration of segment artifacts and of the root index."""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence, Tuple

from sitemapper.domain import (
    ConfigRepository,
    DomainCatalog,
    EntityKind,
    Entry,
    EntryRepository,
    FileSink,
    RebuildMode,
    Segment,
    SegmentRepository,
)
from sitemapper.domain.rules import primary_kind
from sitemapper.infrastructure.xml_codec import (
    IndexRecord,
    UrlRecord,
    render_index,
    render_urlset,
)

from .locks import LockRegistry
from .totals import refresh_totals
from .urls import build_url

INDEX_ARTIFACT = "sitemap.xml"

_REBUILT = "rebuilt"
_FAILED = "failed"
_SKIPPED = "skipped"
_CANCELLED = "cancelled"


@dataclass(frozen=True)
class _SegmentOutcome:
    name: str
    status: str
    urls: int = 0
    size_bytes: int = 0


@dataclass(frozen=True)
class RebuildResult:
    """Summary of one rebuild sweep."""

    mode: RebuildMode
    segments_rebuilt: Tuple[str, ...]
    segments_failed: Tuple[str, ...]
    #: Selected segments without active entries; they stay dirty.
    segments_skipped: Tuple[str, ...]
    total_urls: int
    total_size_bytes: int
    elapsed_ms: int
    #: ``False`` only when the root index could not be written.
    success: bool
    cancelled: bool = False

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "segments_rebuilt": list(self.segments_rebuilt),
            "segments_failed": list(self.segments_failed),
            "segments_skipped": list(self.segments_skipped),
            "total_urls": self.total_urls,
            "total_size_bytes": self.total_size_bytes,
            "elapsed_ms": self.elapsed_ms,
            "success": self.success,
            "cancelled": self.cancelled,
        }


class Regenerator:
    """Serializes segments through the file sink and rebuilds the root index.

    Each segment is an independent unit of work: a failure leaves its
    ``needs_rebuild`` flag set for the next sweep and never aborts the
    remaining segments.
    """

    def __init__(
        self,
        entries: EntryRepository,
        segments: SegmentRepository,
        config: ConfigRepository,
        catalog: DomainCatalog,
        sink: FileSink,
        *,
        base_url: str,
        locks: LockRegistry | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._entries = entries
        self._segments = segments
        self._config = config
        self._catalog = catalog
        self._sink = sink
        self._base_url = base_url
        self._locks = locks or LockRegistry()
        self._logger = logger or logging.getLogger("sitemapper.regenerator")

    def rebuild(
        self,
        mode: RebuildMode = RebuildMode.INCREMENTAL,
        *,
        max_workers: int = 1,
        cancel_event: threading.Event | None = None,
    ) -> RebuildResult:
        """Regenerate the selected segments and the root index.

        Args:
            mode: ``FULL`` rebuilds every active segment, ``INCREMENTAL`` only
                those flagged ``needs_rebuild``.
            max_workers: Segments processed concurrently.
            cancel_event: When set, segments not started yet are left as they
                are; the root index is still rebuilt.

        Returns:
            A :class:`RebuildResult` naming every rebuilt, failed and skipped
            segment.
        """

        started = time.perf_counter()
        selected = self._select(mode)
        self._logger.info(
            "Starting %s rebuild of %s segment(s)", mode.value, len(selected)
        )

        if max_workers > 1 and len(selected) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                outcomes = list(
                    executor.map(
                        lambda segment: self._rebuild_segment(segment, cancel_event),
                        selected,
                    )
                )
        else:
            outcomes = [
                self._rebuild_segment(segment, cancel_event) for segment in selected
            ]

        success = self._write_index()
        cancelled = any(outcome.status == _CANCELLED for outcome in outcomes)
        if mode is RebuildMode.FULL and not cancelled:
            self._config.record_full_rebuild(datetime.now(timezone.utc))
        refresh_totals(self._entries, self._segments, self._config)

        rebuilt = [outcome for outcome in outcomes if outcome.status == _REBUILT]
        result = RebuildResult(
            mode=mode,
            segments_rebuilt=tuple(outcome.name for outcome in rebuilt),
            segments_failed=tuple(
                outcome.name for outcome in outcomes if outcome.status == _FAILED
            ),
            segments_skipped=tuple(
                outcome.name for outcome in outcomes if outcome.status == _SKIPPED
            ),
            total_urls=sum(outcome.urls for outcome in rebuilt),
            total_size_bytes=sum(outcome.size_bytes for outcome in rebuilt),
            elapsed_ms=int((time.perf_counter() - started) * 1000),
            success=success,
            cancelled=cancelled,
        )
        self._logger.info(
            "%s rebuild finished: rebuilt=%s failed=%s skipped=%s urls=%s in %sms",
            mode.value,
            len(result.segments_rebuilt),
            len(result.segments_failed),
            len(result.segments_skipped),
            result.total_urls,
            result.elapsed_ms,
        )
        return result

    def rebuild_segment(self, name: str) -> bool:
        """Rebuild a single segment by name; returns whether it was written."""

        segment = self._segments.get(name)
        if segment is None or not segment.active:
            raise LookupError(f"Segment '{name}' not found")
        outcome = self._rebuild_segment(segment, None)
        if outcome.status == _REBUILT:
            self._write_index()
        return outcome.status == _REBUILT

    def build_index(self) -> bool:
        """Rewrite only the root index; returns whether it was written."""

        return self._write_index()

    def _select(self, mode: RebuildMode) -> List[Segment]:
        active = self._segments.list()
        if mode is RebuildMode.FULL:
            return active
        return [segment for segment in active if segment.needs_rebuild]

    def _rebuild_segment(
        self, segment: Segment, cancel_event: threading.Event | None
    ) -> _SegmentOutcome:
        if cancel_event is not None and cancel_event.is_set():
            return _SegmentOutcome(segment.name, _CANCELLED)

        try:
            with self._locks.segment(segment.name):
                started = time.perf_counter()
                entries = self._entries.list_active_in_segment(segment.name)
                if not entries:
                    self._logger.warning(
                        "Segment %s has no active entries; skipping", segment.name
                    )
                    return _SegmentOutcome(segment.name, _SKIPPED)

                data = render_urlset(self._records_for(entries))
                written = self._sink.write(segment.artifact_name, data)
                count = self._entries.count_in_segment(segment.name)
                elapsed_ms = int((time.perf_counter() - started) * 1000)
                self._segments.record_generation(
                    segment.name,
                    current_count=count,
                    size_bytes=written.size_bytes,
                    generation_time_ms=elapsed_ms,
                    generated_at=datetime.now(timezone.utc),
                )
        except Exception:
            self._logger.exception("Rebuild of segment %s failed", segment.name)
            return _SegmentOutcome(segment.name, _FAILED)

        self._logger.debug(
            "Segment %s written: %s URL(s), %s bytes",
            segment.name,
            len(entries),
            written.size_bytes,
        )
        return _SegmentOutcome(
            segment.name, _REBUILT, urls=len(entries), size_bytes=written.size_bytes
        )

    def _records_for(self, entries: Sequence[Entry]) -> List[UrlRecord]:
        """Build artifact records, preferring the entity's own modification time."""

        wanted: Dict[EntityKind, List[str]] = {}
        for entry in entries:
            kind = primary_kind(entry.entry_type)
            entity_id = entry.references.get(kind) if kind else None
            if kind and entity_id:
                wanted.setdefault(kind, []).append(entity_id)

        modified: Dict[Tuple[EntityKind, str], datetime] = {}
        for kind, ids in wanted.items():
            for entity_id, entity in self._catalog.get_entities(kind, ids).items():
                if entity.last_modified_at is not None:
                    modified[(kind, entity_id)] = entity.last_modified_at

        records = []
        for entry in entries:
            kind = primary_kind(entry.entry_type)
            lastmod = entry.last_modified
            if kind is not None:
                lastmod = modified.get((kind, entry.references.get(kind) or ""), lastmod)
            records.append(
                UrlRecord(
                    loc=entry.url,
                    lastmod=lastmod,
                    change_frequency=entry.change_frequency.value,
                    priority=entry.priority,
                )
            )
        return records

    def _write_index(self) -> bool:
        try:
            records = [
                IndexRecord(
                    loc=build_url(self._base_url, segment.artifact_name),
                    lastmod=segment.last_generated_at,
                )
                for segment in self._segments.list()
            ]
            self._sink.write(INDEX_ARTIFACT, render_index(records))
        except Exception:
            self._logger.exception("Root index rebuild failed")
            return False
        self._logger.info("Root index written with %s segment(s)", len(records))
        return True


__all__ = ["INDEX_ARTIFACT", "RebuildResult", "Regenerator"]
