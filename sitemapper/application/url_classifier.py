"""Classification of site URLs by the shape of their path."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Tuple

from sitemapper.domain import ChangeFrequency, EntryType, SegmentFamily
from sitemapper.domain.rules import defaults_for, family_for

from .urls import slug_from_url

STATIC_PAGES: FrozenSet[str] = frozenset(
    {"companies", "search", "about", "services", "privacy", "terms", "add-company"}
)

# Path shapes below ``country/<code>``: literal markers at odd positions.
_COUNTRY_SHAPES: Dict[Tuple[str, ...], EntryType] = {
    (): EntryType.COUNTRY,
    ("city",): EntryType.CITY,
    ("category",): EntryType.COUNTRY_CATEGORY,
    ("city", "sub-area"): EntryType.SUBAREA,
    ("city", "category"): EntryType.CITY_CATEGORY,
    ("city", "sub-area", "category"): EntryType.SUBAREA_CATEGORY,
}

# Slug key captured after each marker.
_MARKER_KEYS = {
    "country": "country",
    "city": "city",
    "sub-area": "sub_area",
    "category": "category",
}

_SUB_TYPES = {
    EntryType.CATEGORY: EntryType.CATEGORY_SUB,
    EntryType.COUNTRY_CATEGORY: EntryType.COUNTRY_CATEGORY_SUB,
    EntryType.CITY_CATEGORY: EntryType.CITY_CATEGORY_SUB,
    EntryType.SUBAREA_CATEGORY: EntryType.SUBAREA_CATEGORY_SUB,
}


@dataclass(frozen=True)
class UrlClassification:
    entry_type: EntryType
    family: SegmentFamily
    canonical_slug: str
    priority: float
    change_frequency: ChangeFrequency
    #: Slugs captured from the path, e.g. ``{"country": "sy", "city": "damascus"}``.
    path_slugs: Dict[str, str] = field(default_factory=dict)


def _classify_path(parts: List[str]) -> Tuple[EntryType, Dict[str, str]]:
    if not parts or (len(parts) == 1 and parts[0] in STATIC_PAGES):
        return EntryType.STATIC, {}

    if parts[0] == "category" and len(parts) in (2, 3):
        slugs = {"category": parts[1]}
        if len(parts) == 3:
            slugs["sub_category"] = parts[2]
            return EntryType.CATEGORY_SUB, slugs
        return EntryType.CATEGORY, slugs

    if parts[0] == "country" and len(parts) >= 2:
        slugs = {"country": parts[1]}
        markers: List[str] = []
        rest = parts[2:]
        index = 0
        while index + 1 < len(rest) and rest[index] in _MARKER_KEYS:
            marker = rest[index]
            markers.append(marker)
            slugs[_MARKER_KEYS[marker]] = rest[index + 1]
            index += 2
            if marker == "category":
                break
        trailing = rest[index:]
        entry_type = _COUNTRY_SHAPES.get(tuple(markers))
        if entry_type is not None:
            if not trailing:
                return entry_type, slugs
            if len(trailing) == 1 and entry_type in _SUB_TYPES:
                slugs["sub_category"] = trailing[0]
                return _SUB_TYPES[entry_type], slugs

    return EntryType.COMPANY, {"company": "/".join(parts)}


def classify_url(url: str, base_url: str) -> UrlClassification:
    """Infer entry type, family and default metadata from a site URL.

    ``country/<code>/city/<city>/category/<category>/<sub>`` style paths map
    to location and composite types, ``category/<category>`` to category
    pages, a short list of well-known paths to static pages and anything else
    to a company page.
    """

    slug = slug_from_url(url, base_url)
    parts = [part for part in slug.split("/") if part]
    entry_type, path_slugs = _classify_path(parts)
    defaults = defaults_for(entry_type, slug)
    return UrlClassification(
        entry_type=entry_type,
        family=family_for(entry_type),
        canonical_slug=slug,
        priority=defaults.priority,
        change_frequency=defaults.change_frequency,
        path_slugs=path_slugs,
    )


__all__ = ["STATIC_PAGES", "UrlClassification", "classify_url"]
