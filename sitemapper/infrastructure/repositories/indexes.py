"""Collection names and index definitions of the sitemap store."""
from __future__ import annotations

from typing import Any

from pymongo.collection import Collection
from pymongo.errors import OperationFailure

ENTRIES_COLLECTION = "sitemap_entries"
SEGMENTS_COLLECTION = "sitemap_segments"
BATCHES_COLLECTION = "sitemap_batches"
CONFIG_COLLECTION = "sitemap_config"
COUNTERS_COLLECTION = "sitemap_counters"

_Definitions = tuple[tuple[list[tuple[str, int]], dict[str, object]], ...]

ENTRY_INDEXES: _Definitions = (
    ([("url", 1)], {"name": "url_unique", "unique": True}),
    (
        [("segment_name", 1), ("position_in_segment", 1)],
        {"name": "segment_position"},
    ),
    ([("segment_name", 1), ("active", 1)], {"name": "segment_active"}),
    ([("entry_type", 1), ("active", 1)], {"name": "type_active"}),
    ([("added_at", -1)], {"name": "added_at_desc"}),
    ([("company_id", 1)], {"name": "company_id", "sparse": True}),
    ([("country_id", 1)], {"name": "country_id", "sparse": True}),
    ([("city_id", 1)], {"name": "city_id", "sparse": True}),
    ([("sub_area_id", 1)], {"name": "sub_area_id", "sparse": True}),
    ([("category_id", 1)], {"name": "category_id", "sparse": True}),
    ([("sub_category_id", 1)], {"name": "sub_category_id", "sparse": True}),
)

SEGMENT_INDEXES: _Definitions = (
    ([("name", 1)], {"name": "name_unique", "unique": True}),
    ([("family", 1), ("ordinal", 1)], {"name": "family_ordinal"}),
)

BATCH_INDEXES: _Definitions = (
    ([("batch_number", 1)], {"name": "batch_number_unique", "unique": True}),
)


# IndexOptionsConflict / IndexKeySpecsConflict: an equivalent index already exists.
_INDEX_CONFLICT_CODES = {85, 86}


def _apply(collection: Collection, definitions: _Definitions) -> None:
    for keys, options in definitions:
        try:
            collection.create_index(keys, **options)
        except OperationFailure as exc:
            if exc.code not in _INDEX_CONFLICT_CODES:
                raise


def ensure_sitemap_indexes(database: Any) -> None:
    """Create every index the sitemap repositories rely on."""

    _apply(database[ENTRIES_COLLECTION], ENTRY_INDEXES)
    _apply(database[SEGMENTS_COLLECTION], SEGMENT_INDEXES)
    _apply(database[BATCHES_COLLECTION], BATCH_INDEXES)


__all__ = [
    "BATCHES_COLLECTION",
    "CONFIG_COLLECTION",
    "COUNTERS_COLLECTION",
    "ENTRIES_COLLECTION",
    "SEGMENTS_COLLECTION",
    "ensure_sitemap_indexes",
]
