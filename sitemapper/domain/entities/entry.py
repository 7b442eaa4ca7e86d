"""Entity describing a single published URL."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from .enums import AddMethod, ChangeFrequency, EntityKind, EntryType

_REFERENCE_FIELDS: Dict[EntityKind, str] = {
    EntityKind.COMPANY: "company_id",
    EntityKind.COUNTRY: "country_id",
    EntityKind.CITY: "city_id",
    EntityKind.SUB_AREA: "sub_area_id",
    EntityKind.CATEGORY: "category_id",
    EntityKind.SUB_CATEGORY: "sub_category_id",
}


def reference_field(kind: EntityKind) -> str:
    """Return the attribute name that stores the id of ``kind``."""

    return _REFERENCE_FIELDS[kind]


@dataclass(frozen=True)
class EntryReferences:
    """Foreign references from an entry to the domain entities it denotes."""

    company_id: Optional[str] = None
    country_id: Optional[str] = None
    city_id: Optional[str] = None
    sub_area_id: Optional[str] = None
    category_id: Optional[str] = None
    sub_category_id: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "EntryReferences":
        """Build references from ``{"city_id": ...}`` or ``{"city": ...}`` keys."""

        values: Dict[str, Optional[str]] = {}
        for kind, attribute in _REFERENCE_FIELDS.items():
            raw = None
            if data:
                raw = data.get(attribute, data.get(kind.value))
            values[attribute] = str(raw) if raw not in (None, "") else None
        return cls(**values)

    def get(self, kind: EntityKind) -> Optional[str]:
        return getattr(self, _REFERENCE_FIELDS[kind])

    def merge(self, other: "EntryReferences") -> "EntryReferences":
        """Return references where ids set on ``other`` take precedence."""

        changes = {
            attribute: getattr(other, attribute)
            for attribute in _REFERENCE_FIELDS.values()
            if getattr(other, attribute) is not None
        }
        return replace(self, **changes)

    def to_mapping(self) -> Dict[str, Optional[str]]:
        return {
            attribute: getattr(self, attribute)
            for attribute in _REFERENCE_FIELDS.values()
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Entry:
    """One URL of the published inventory, assigned to exactly one segment."""

    #: Absolute URL; globally unique key of the inventory.
    url: str
    #: Kind of page the URL points to.
    entry_type: EntryType
    #: Path of the URL relative to the site base URL.
    canonical_slug: str
    #: Name of the segment that owns the entry.
    segment_name: str
    #: Dense 1..N position inside the segment, used for serialization order.
    position_in_segment: int
    #: Crawl priority between 0.0 and 1.0.
    priority: float
    #: Expected change frequency advertised to crawlers.
    change_frequency: ChangeFrequency
    #: Ids of the domain entities the page denotes.
    references: EntryReferences = field(default_factory=EntryReferences)
    #: Batch that created the entry, when it came from a bulk ingestion.
    batch_number: Optional[int] = None
    #: How the entry was added.
    add_method: AddMethod = AddMethod.MANUAL
    #: Actor that added the entry, when known.
    added_by: Optional[str] = None
    #: Soft-delete flag; entries are never physically removed.
    active: bool = True
    last_modified: datetime = field(default_factory=_utcnow)
    added_at: datetime = field(default_factory=_utcnow)

    def deactivated(self) -> "Entry":
        return replace(self, active=False)

    def reactivated(self, at: datetime | None = None) -> "Entry":
        return replace(self, active=True, last_modified=at or _utcnow())


__all__ = ["Entry", "EntryReferences", "reference_field"]
