"""Hooks keeping the entry inventory in step with the domain catalog."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from sitemapper.domain import (
    AddMethod,
    ChangeFrequency,
    ConfigRepository,
    DomainCatalog,
    EntityKind,
    EntityNotFoundError,
    Entry,
    EntryReferences,
    EntryRepository,
    EntryType,
    SegmentFamily,
    SegmentRepository,
    ValidationError,
)
from sitemapper.domain.rules import (
    defaults_for,
    family_for,
    parse_change_frequency,
    validate_priority,
)
from sitemapper.infrastructure.xml_codec import parse_urlset

from .distributor import SegmentDistributor
from .locks import LockRegistry
from .totals import refresh_totals
from .url_classifier import classify_url
from .urls import build_url, slug_from_url

BRANCH_SAMPLE_SIZE = 5

CREATED = "created"
REACTIVATED = "reactivated"
REFRESHED = "refreshed"
DEACTIVATED = "deactivated"
UNCHANGED = "unchanged"


@dataclass(frozen=True)
class UpsertResult:
    url: str
    #: One of ``created``, ``reactivated``, ``refreshed``, ``deactivated`` or ``unchanged``.
    action: str
    segment_name: Optional[str] = None

    def to_mapping(self) -> Dict[str, Any]:
        return {"url": self.url, "action": self.action, "segment_name": self.segment_name}


@dataclass(frozen=True)
class BranchCandidate:
    """Enumerated URL of a branch, with the entity ids it combines."""

    url: str
    entry_type: Optional[EntryType] = None
    related_ids: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class BranchPreview:
    total: int
    existing: int
    new: int
    sample: Tuple[str, ...]

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "existing": self.existing,
            "new": self.new,
            "sample": list(self.sample),
        }


@dataclass(frozen=True)
class BranchGenerationResult:
    total: int
    existing: int
    created: int
    reactivated: int
    segments_affected: Tuple[str, ...]

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "existing": self.existing,
            "created": self.created,
            "reactivated": self.reactivated,
            "segments_affected": list(self.segments_affected),
        }


@dataclass(frozen=True)
class CleanupResult:
    deactivated: Dict[str, int]
    segments_affected: Tuple[str, ...]

    @property
    def total(self) -> int:
        return sum(self.deactivated.values())

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "deactivated": dict(self.deactivated),
            "total": self.total,
            "segments_affected": list(self.segments_affected),
        }


@dataclass(frozen=True)
class ImportResult:
    total: int
    created: int
    reactivated: int
    skipped: int
    by_type: Dict[str, int]
    segments_affected: Tuple[str, ...]

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "created": self.created,
            "reactivated": self.reactivated,
            "skipped": self.skipped,
            "by_type": dict(self.by_type),
            "segments_affected": list(self.segments_affected),
        }


BranchInput = Union[str, BranchCandidate]


@dataclass(frozen=True)
class _Resolved:
    url: str
    entry_type: EntryType
    references: EntryReferences


class SyncService:
    """Applies single-entity changes and branch materialization.

    Every write goes through :meth:`upsert_single`, which assigns new URLs to
    the current writable segment of their family with the same planner used
    by bulk ingestion.
    """

    def __init__(
        self,
        entries: EntryRepository,
        segments: SegmentRepository,
        config: ConfigRepository,
        catalog: DomainCatalog,
        *,
        base_url: str,
        distributor: SegmentDistributor | None = None,
        locks: LockRegistry | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._entries = entries
        self._segments = segments
        self._config = config
        self._catalog = catalog
        self._base_url = base_url
        self._distributor = distributor or SegmentDistributor(segments, config)
        self._locks = locks or LockRegistry()
        self._logger = logger or logging.getLogger("sitemapper.sync")

    # ------------------------------------------------------------------
    # Single upserts
    # ------------------------------------------------------------------
    def upsert_single(
        self,
        entry_type: EntryType,
        canonical_url: str,
        related_ids: Mapping[str, Any] | None = None,
        domain_active: bool = True,
        *,
        priority: float | None = None,
        change_frequency: ChangeFrequency | str | None = None,
        add_method: AddMethod = AddMethod.MANUAL,
        added_by: str | None = None,
    ) -> UpsertResult:
        """Mirror the state of one domain page into the inventory.

        Args:
            entry_type: Kind of page.
            canonical_url: Absolute URL, or a path relative to the base URL.
            related_ids: Ids of the entities the page denotes, keyed by
                ``company_id``/``city_id``... or by entity kind.
            domain_active: ``False`` deactivates the entry for the URL.
            priority: Priority for a created entry; the type default when
                omitted. Also overrides the stored value on an existing entry.
            change_frequency: Same as ``priority`` for the change frequency.
            add_method: Method recorded on a created entry.
            added_by: Actor recorded on a created entry.

        Returns:
            An :class:`UpsertResult` describing what happened.
        """

        resolved = _Resolved(
            url=self._absolute(canonical_url),
            entry_type=entry_type,
            references=EntryReferences.from_mapping(related_ids),
        )
        with self._locks.family(family_for(entry_type)):
            result = self._upsert(
                resolved,
                domain_active=domain_active,
                priority=priority,
                change_frequency=change_frequency,
                add_method=add_method,
                added_by=added_by,
            )
        if result.action != UNCHANGED:
            refresh_totals(self._entries, self._segments, self._config)
        self._logger.info("Upsert %s: %s", result.url, result.action)
        return result

    def _upsert(
        self,
        resolved: _Resolved,
        *,
        domain_active: bool,
        priority: float | None = None,
        change_frequency: ChangeFrequency | str | None = None,
        add_method: AddMethod = AddMethod.MANUAL,
        added_by: str | None = None,
    ) -> UpsertResult:
        url = resolved.url
        if not domain_active:
            current = self._entries.get_by_url(url)
            if current is None or not current.active:
                return UpsertResult(url, UNCHANGED)
            # Same lock the Regenerator holds until it clears the dirty flag.
            with self._locks.segment(current.segment_name):
                segment_name = self._entries.deactivate_url(url)
                if segment_name is None:
                    return UpsertResult(url, UNCHANGED)
                self._segments.mark_needs_rebuild([segment_name])
            return UpsertResult(url, DEACTIVATED, segment_name)

        slug = slug_from_url(url, self._base_url)
        defaults = defaults_for(resolved.entry_type, slug)
        now = datetime.now(timezone.utc)
        existing = self._entries.get_by_url(url)
        if existing is not None:
            updated = replace(
                existing,
                references=existing.references.merge(resolved.references),
                priority=(
                    existing.priority if priority is None else validate_priority(priority)
                ),
                change_frequency=(
                    existing.change_frequency
                    if change_frequency is None
                    else parse_change_frequency(change_frequency)
                ),
            )
            action = REFRESHED if existing.active else REACTIVATED
            with self._locks.segment(existing.segment_name):
                self._entries.replace(updated.reactivated(now))
                self._segments.mark_needs_rebuild([existing.segment_name])
            return UpsertResult(url, action, existing.segment_name)

        resolved_priority = validate_priority(
            defaults.priority if priority is None else priority
        )
        resolved_frequency = parse_change_frequency(
            change_frequency or defaults.change_frequency
        )
        allocation = self._distributor.plan(1, family_for(resolved.entry_type)).allocations[0]
        with self._locks.segment(allocation.segment_name):
            if allocation.is_new:
                segment = self._segments.add_if_absent(allocation.to_segment())
            else:
                segment = self._segments.get(allocation.segment_name)
                if segment is None:
                    raise LookupError(f"Segment '{allocation.segment_name}' not found")
            entry = Entry(
                url=url,
                entry_type=resolved.entry_type,
                canonical_slug=slug,
                segment_name=segment.name,
                position_in_segment=segment.current_count + 1,
                priority=resolved_priority,
                change_frequency=resolved_frequency,
                references=resolved.references,
                add_method=add_method,
                added_by=added_by,
                last_modified=now,
                added_at=now,
            )
            inserted = self._entries.insert_many([entry])
            if not inserted:
                # Lost a race with a writer outside this process.
                return UpsertResult(url, UNCHANGED)
            self._segments.record_insertions(segment.name, inserted)
        return UpsertResult(url, CREATED, segment.name)

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------
    def preview_branches(
        self,
        family: SegmentFamily,
        candidates: Iterable[BranchInput],
        *,
        anchor: Tuple[EntityKind, str] | None = None,
    ) -> BranchPreview:
        """Diff enumerated branch URLs against the active inventory; no writes.

        Raises:
            EntityNotFoundError: When ``anchor`` is absent or inactive.
            ValidationError: When a candidate does not belong to ``family``.
        """

        self._check_anchor(anchor)
        resolved = self._resolve_candidates(family, candidates)
        existing = self._entries.existing_urls(resolved, active_only=True)
        new_urls = [url for url in resolved if url not in existing]
        return BranchPreview(
            total=len(resolved),
            existing=len(resolved) - len(new_urls),
            new=len(new_urls),
            sample=tuple(new_urls[:BRANCH_SAMPLE_SIZE]),
        )

    def generate_branches(
        self,
        family: SegmentFamily,
        candidates: Iterable[BranchInput],
        *,
        anchor: Tuple[EntityKind, str] | None = None,
        added_by: str | None = None,
    ) -> BranchGenerationResult:
        """Upsert every branch URL that is not active yet.

        Raises:
            EntityNotFoundError: When ``anchor`` is absent or inactive.
            ValidationError: When a candidate does not belong to ``family``.
        """

        self._check_anchor(anchor)
        resolved = self._resolve_candidates(family, candidates)
        created = reactivated = 0
        segments: List[str] = []
        with self._locks.family(family):
            existing = self._entries.existing_urls(resolved, active_only=True)
            for url, candidate in resolved.items():
                if url in existing:
                    continue
                result = self._upsert(
                    candidate,
                    domain_active=True,
                    add_method=AddMethod.AUTO_GENERATED,
                    added_by=added_by,
                )
                if result.action == CREATED:
                    created += 1
                elif result.action == REACTIVATED:
                    reactivated += 1
                if result.segment_name and result.segment_name not in segments:
                    segments.append(result.segment_name)

        if created or reactivated:
            refresh_totals(self._entries, self._segments, self._config)
        self._logger.info(
            "Branches %s: %s candidate(s), %s created, %s reactivated",
            family.value,
            len(resolved),
            created,
            reactivated,
        )
        return BranchGenerationResult(
            total=len(resolved),
            existing=len(existing),
            created=created,
            reactivated=reactivated,
            segments_affected=tuple(segments),
        )

    def _check_anchor(self, anchor: Tuple[EntityKind, str] | None) -> None:
        if anchor is None:
            return
        kind, entity_id = anchor
        entity = self._catalog.get_entity(kind, entity_id)
        if entity is None or not entity.is_active:
            raise EntityNotFoundError(f"{kind.value} '{entity_id}' not found or inactive")

    def _resolve_candidates(
        self, family: SegmentFamily, candidates: Iterable[BranchInput]
    ) -> Dict[str, _Resolved]:
        resolved: Dict[str, _Resolved] = {}
        for candidate in candidates:
            if isinstance(candidate, str):
                candidate = BranchCandidate(url=candidate)
            url = self._absolute(candidate.url)
            entry_type = candidate.entry_type or classify_url(url, self._base_url).entry_type
            if family_for(entry_type) is not family:
                raise ValidationError(
                    f"URL '{url}' is a {entry_type.value} page, not part of "
                    f"family '{family.value}'"
                )
            resolved.setdefault(
                url,
                _Resolved(
                    url=url,
                    entry_type=entry_type,
                    references=EntryReferences.from_mapping(candidate.related_ids),
                ),
            )
        return resolved

    # ------------------------------------------------------------------
    # Catalog reconciliation
    # ------------------------------------------------------------------
    def deactivate_inactive_references(
        self, kinds: Sequence[EntityKind] | None = None
    ) -> CleanupResult:
        """Deactivate entries pointing at entities the catalog no longer lists.

        A kind for which the catalog returns no active entity at all is left
        untouched, so an empty or unreachable catalog cannot wipe the
        inventory.
        """

        deactivated: Dict[str, int] = {}
        segments: List[str] = []
        for kind in kinds or list(EntityKind):
            active_ids = {entity.id for entity in self._catalog.list_active_entities(kind)}
            if not active_ids:
                self._logger.warning(
                    "Catalog lists no active %s; skipping cleanup for it", kind.value
                )
                deactivated[kind.value] = 0
                continue
            unlisted = self._entries.unlisted_references(kind, active_ids)
            deactivated[kind.value] = 0
            for name in sorted(unlisted):
                with self._locks.segment(name):
                    count = self._entries.deactivate_references(kind, name, unlisted[name])
                    if count:
                        self._segments.mark_needs_rebuild([name])
                deactivated[kind.value] += count
                if count and name not in segments:
                    segments.append(name)
            self._logger.info(
                "Cleanup %s: %s entr(ies) deactivated", kind.value, deactivated[kind.value]
            )

        if segments:
            refresh_totals(self._entries, self._segments, self._config)
        return CleanupResult(deactivated=deactivated, segments_affected=tuple(segments))

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------
    def import_sitemap(self, xml: bytes, *, added_by: str | None = None) -> ImportResult:
        """Register every ``<loc>`` of an existing ``urlset`` document.

        URLs are classified by path shape; URLs already active are skipped.
        """

        records = parse_urlset(xml)
        created = reactivated = skipped = 0
        by_type: Dict[str, int] = {}
        segments: List[str] = []
        for record in records:
            classification = classify_url(record.loc, self._base_url)
            url = build_url(self._base_url, classification.canonical_slug)
            resolved = _Resolved(
                url=url,
                entry_type=classification.entry_type,
                references=EntryReferences(),
            )
            with self._locks.family(classification.family):
                existing = self._entries.get_by_url(url)
                if existing is not None and existing.active:
                    skipped += 1
                    continue
                result = self._upsert(
                    resolved,
                    domain_active=True,
                    priority=_imported_priority(record.priority),
                    change_frequency=_imported_frequency(record.change_frequency),
                    add_method=AddMethod.IMPORTED,
                    added_by=added_by,
                )
            if result.action == CREATED:
                created += 1
            elif result.action == REACTIVATED:
                reactivated += 1
            else:
                skipped += 1
                continue
            type_key = classification.entry_type.value
            by_type[type_key] = by_type.get(type_key, 0) + 1
            if result.segment_name and result.segment_name not in segments:
                segments.append(result.segment_name)

        if created or reactivated:
            refresh_totals(self._entries, self._segments, self._config)
        self._logger.info(
            "Imported %s URL(s): %s created, %s reactivated, %s skipped",
            len(records),
            created,
            reactivated,
            skipped,
        )
        return ImportResult(
            total=len(records),
            created=created,
            reactivated=reactivated,
            skipped=skipped,
            by_type=by_type,
            segments_affected=tuple(segments),
        )

    def _absolute(self, url: str) -> str:
        if "://" in url:
            return url.strip()
        return build_url(self._base_url, url)


# Foreign documents may carry values outside the protocol; fall back to defaults.
def _imported_priority(value: Optional[float]) -> Optional[float]:
    if value is None or not 0.0 <= value <= 1.0:
        return None
    return value


def _imported_frequency(value: Optional[str]) -> Optional[str]:
    if value not in {frequency.value for frequency in ChangeFrequency}:
        return None
    return value


__all__ = [
    "BranchCandidate",
    "BranchGenerationResult",
    "BranchPreview",
    "CleanupResult",
    "ImportResult",
    "SyncService",
    "UpsertResult",
]
