"""Defaults and family assignment for each entry type."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from .entities import ChangeFrequency, EntityKind, EntryType, SegmentFamily
from .errors import ValidationError


@dataclass(frozen=True)
class EntryDefaults:
    priority: float
    change_frequency: ChangeFrequency


HOME_PAGE_DEFAULTS = EntryDefaults(1.0, ChangeFrequency.DAILY)

ENTRY_DEFAULTS: Dict[EntryType, EntryDefaults] = {
    EntryType.STATIC: EntryDefaults(0.5, ChangeFrequency.MONTHLY),
    EntryType.COMPANY: EntryDefaults(0.9, ChangeFrequency.MONTHLY),
    EntryType.COUNTRY: EntryDefaults(0.8, ChangeFrequency.WEEKLY),
    EntryType.CITY: EntryDefaults(0.8, ChangeFrequency.WEEKLY),
    EntryType.SUBAREA: EntryDefaults(0.7, ChangeFrequency.WEEKLY),
    EntryType.CATEGORY: EntryDefaults(0.8, ChangeFrequency.WEEKLY),
    EntryType.CATEGORY_SUB: EntryDefaults(0.7, ChangeFrequency.WEEKLY),
    EntryType.COUNTRY_CATEGORY: EntryDefaults(0.8, ChangeFrequency.WEEKLY),
    EntryType.COUNTRY_CATEGORY_SUB: EntryDefaults(0.7, ChangeFrequency.WEEKLY),
    EntryType.CITY_CATEGORY: EntryDefaults(0.8, ChangeFrequency.WEEKLY),
    EntryType.CITY_CATEGORY_SUB: EntryDefaults(0.7, ChangeFrequency.WEEKLY),
    EntryType.SUBAREA_CATEGORY: EntryDefaults(0.7, ChangeFrequency.WEEKLY),
    EntryType.SUBAREA_CATEGORY_SUB: EntryDefaults(0.7, ChangeFrequency.WEEKLY),
}

FAMILY_FOR_TYPE: Dict[EntryType, SegmentFamily] = {
    EntryType.STATIC: SegmentFamily.STATIC,
    EntryType.COMPANY: SegmentFamily.COMPANIES,
    EntryType.COUNTRY: SegmentFamily.LOCATIONS,
    EntryType.CITY: SegmentFamily.LOCATIONS,
    EntryType.SUBAREA: SegmentFamily.LOCATIONS,
    EntryType.CATEGORY: SegmentFamily.CATEGORIES_SIMPLE,
    EntryType.CATEGORY_SUB: SegmentFamily.CATEGORIES_SIMPLE,
}

# Entity whose page the entry type denotes; composite pages have none.
PRIMARY_KIND_FOR_TYPE: Dict[EntryType, EntityKind] = {
    EntryType.COMPANY: EntityKind.COMPANY,
    EntryType.COUNTRY: EntityKind.COUNTRY,
    EntryType.CITY: EntityKind.CITY,
    EntryType.SUBAREA: EntityKind.SUB_AREA,
    EntryType.CATEGORY: EntityKind.CATEGORY,
    EntryType.CATEGORY_SUB: EntityKind.SUB_CATEGORY,
}

# Entry type used when a family is fed with bare entity ids.
INGEST_TYPE_FOR_FAMILY: Dict[SegmentFamily, EntryType] = {
    SegmentFamily.COMPANIES: EntryType.COMPANY,
    SegmentFamily.LOCATIONS: EntryType.CITY,
    SegmentFamily.CATEGORIES_SIMPLE: EntryType.CATEGORY,
}


def family_for(entry_type: EntryType) -> SegmentFamily:
    if entry_type.is_composite:
        return SegmentFamily.CATEGORIES_MIXED
    return FAMILY_FOR_TYPE[entry_type]


def defaults_for(entry_type: EntryType, slug: str | None = None) -> EntryDefaults:
    if entry_type is EntryType.STATIC and not (slug or "").strip("/"):
        return HOME_PAGE_DEFAULTS
    return ENTRY_DEFAULTS[entry_type]


def primary_kind(entry_type: EntryType) -> Optional[EntityKind]:
    return PRIMARY_KIND_FOR_TYPE.get(entry_type)


def ingest_type_for(
    family: SegmentFamily, entry_type: EntryType | None = None
) -> EntryType:
    """Resolve the entry type produced when ingesting entity ids into ``family``."""

    resolved = entry_type or INGEST_TYPE_FOR_FAMILY.get(family)
    if resolved is None:
        raise ValidationError(
            f"Family '{family.value}' cannot be fed with entity ids"
        )
    if family_for(resolved) is not family:
        raise ValidationError(
            f"Entry type '{resolved.value}' does not belong to family '{family.value}'"
        )
    if primary_kind(resolved) is None:
        raise ValidationError(
            f"Entry type '{resolved.value}' is not backed by a single entity"
        )
    return resolved


def validate_priority(priority: float) -> float:
    try:
        value = float(priority)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid priority: {priority!r}") from exc
    if not 0.0 <= value <= 1.0:
        raise ValidationError(f"Priority must be between 0.0 and 1.0, got {value}")
    return value


def parse_change_frequency(value: ChangeFrequency | str) -> ChangeFrequency:
    try:
        return ChangeFrequency(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown change frequency: {value!r}") from exc


__all__ = [
    "ENTRY_DEFAULTS",
    "EntryDefaults",
    "FAMILY_FOR_TYPE",
    "INGEST_TYPE_FOR_FAMILY",
    "defaults_for",
    "family_for",
    "ingest_type_for",
    "parse_change_frequency",
    "primary_kind",
    "validate_priority",
]
