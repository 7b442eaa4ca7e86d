"""Entry repository backed by MongoDB."""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from pymongo.collection import Collection
from pymongo.errors import BulkWriteError

from sitemapper.domain import (
    AddMethod,
    ChangeFrequency,
    EntityKind,
    Entry,
    EntryQuery,
    EntryReferences,
    EntryRepository,
    EntryType,
    reference_field,
)

DUPLICATE_KEY_ERROR = 11000
# Keeps ``$in`` filters well below the 16MB document limit.
IN_CHUNK_SIZE = 5000


def _chunks(values: Sequence[str], size: int = IN_CHUNK_SIZE) -> Iterator[List[str]]:
    for start in range(0, len(values), size):
        yield list(values[start : start + size])


class MongoEntryRepository(EntryRepository):
    """Stores :class:`Entry` rows as flat documents keyed by ``url``."""

    def __init__(self, collection: Collection) -> None:
        self._collection: Collection = collection

    def insert_many(self, entries: Sequence[Entry]) -> int:
        documents = [self._serialize(entry) for entry in entries]
        if not documents:
            return 0
        try:
            result = self._collection.insert_many(documents, ordered=False)
        except BulkWriteError as exc:
            details = exc.details or {}
            errors = details.get("writeErrors", [])
            if any(error.get("code") != DUPLICATE_KEY_ERROR for error in errors):
                raise
            return int(details.get("nInserted", 0))
        return len(result.inserted_ids)

    def get_by_url(self, url: str) -> Optional[Entry]:
        data = self._collection.find_one({"url": url})
        return self._deserialize(data) if data else None

    def replace(self, entry: Entry) -> None:
        self._collection.replace_one({"url": entry.url}, self._serialize(entry))

    def existing_urls(self, urls: Iterable[str], *, active_only: bool = False) -> Set[str]:
        found: Set[str] = set()
        for chunk in _chunks(list(dict.fromkeys(urls))):
            query: Dict[str, Any] = {"url": {"$in": chunk}}
            if active_only:
                query["active"] = True
            found.update(doc["url"] for doc in self._collection.find(query, {"url": 1}))
        return found

    def active_reference_ids(self, kind: EntityKind, ids: Iterable[str]) -> Set[str]:
        field = reference_field(kind)
        found: Set[str] = set()
        for chunk in _chunks(list(dict.fromkeys(ids))):
            cursor = self._collection.find(
                {field: {"$in": chunk}, "active": True}, {field: 1}
            )
            found.update(str(doc[field]) for doc in cursor)
        return found

    def deactivate_url(self, url: str) -> Optional[str]:
        data = self._collection.find_one_and_update(
            {"url": url, "active": True},
            {"$set": {"active": False}},
            projection={"segment_name": 1},
        )
        return data.get("segment_name") if data else None

    def unlisted_references(
        self, kind: EntityKind, active_ids: Set[str]
    ) -> Dict[str, Set[str]]:
        # Streams distinct (segment, id) pairs; the catalog ids never enter a filter.
        field = reference_field(kind)
        cursor = self._collection.aggregate(
            [
                {"$match": {field: {"$ne": None}, "active": True}},
                {
                    "$group": {
                        "_id": {"segment": "$segment_name", "reference": f"${field}"}
                    }
                },
            ],
            allowDiskUse=True,
        )
        unlisted: Dict[str, Set[str]] = {}
        for row in cursor:
            reference = str(row["_id"]["reference"])
            if reference not in active_ids:
                unlisted.setdefault(row["_id"]["segment"], set()).add(reference)
        return unlisted

    def deactivate_references(
        self, kind: EntityKind, segment_name: str, ids: Iterable[str]
    ) -> int:
        field = reference_field(kind)
        modified = 0
        for chunk in _chunks(sorted(set(ids))):
            result = self._collection.update_many(
                {"segment_name": segment_name, field: {"$in": chunk}, "active": True},
                {"$set": {"active": False}},
            )
            modified += result.modified_count
        return modified

    def list_active_in_segment(self, segment_name: str) -> List[Entry]:
        cursor = self._collection.find(
            {"segment_name": segment_name, "active": True}
        ).sort("position_in_segment", 1)
        return [self._deserialize(data) for data in cursor]

    def count_in_segment(self, segment_name: str) -> int:
        return self._collection.count_documents({"segment_name": segment_name})

    def count_active(self, entry_type: EntryType | None = None) -> int:
        query: Dict[str, Any] = {"active": True}
        if entry_type is not None:
            query["entry_type"] = entry_type.value
        return self._collection.count_documents(query)

    def search(
        self, query: EntryQuery, *, offset: int, limit: int
    ) -> Tuple[List[Entry], int]:
        filters: Dict[str, Any] = {"active": True}
        if query.entry_type is not None:
            filters["entry_type"] = query.entry_type.value
        if query.segment_name:
            filters["segment_name"] = query.segment_name
        if query.search:
            pattern = {"$regex": re.escape(query.search), "$options": "i"}
            filters["$or"] = [{"url": pattern}, {"canonical_slug": pattern}]
        total = self._collection.count_documents(filters)
        cursor = (
            self._collection.find(filters)
            .sort([("added_at", -1), ("url", 1)])
            .skip(offset)
            .limit(limit)
        )
        return [self._deserialize(data) for data in cursor], total

    def _serialize(self, entry: Entry) -> dict:
        document = {
            "url": entry.url,
            "entry_type": entry.entry_type.value,
            "canonical_slug": entry.canonical_slug,
            "segment_name": entry.segment_name,
            "position_in_segment": entry.position_in_segment,
            "priority": entry.priority,
            "change_frequency": entry.change_frequency.value,
            "batch_number": entry.batch_number,
            "add_method": entry.add_method.value,
            "added_by": entry.added_by,
            "active": entry.active,
            "last_modified": entry.last_modified,
            "added_at": entry.added_at,
        }
        document.update(entry.references.to_mapping())
        return document

    def _deserialize(self, data: dict) -> Entry:
        return Entry(
            url=data["url"],
            entry_type=EntryType(data["entry_type"]),
            canonical_slug=data.get("canonical_slug", ""),
            segment_name=data["segment_name"],
            position_in_segment=int(data["position_in_segment"]),
            priority=float(data["priority"]),
            change_frequency=ChangeFrequency(data["change_frequency"]),
            references=EntryReferences.from_mapping(data),
            batch_number=data.get("batch_number"),
            add_method=AddMethod(data.get("add_method", AddMethod.MANUAL.value)),
            added_by=data.get("added_by"),
            active=bool(data.get("active", True)),
            last_modified=data["last_modified"],
            added_at=data["added_at"],
        )


__all__ = ["MongoEntryRepository"]
