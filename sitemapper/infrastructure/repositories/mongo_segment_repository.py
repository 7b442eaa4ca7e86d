"""Segment repository backed by MongoDB."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pymongo import ReturnDocument
from pymongo.collection import Collection

from sitemapper.domain import Segment, SegmentFamily, SegmentRepository

# Full is sticky: once set it is never cleared by a recount.
_REFRESH_IS_FULL = {
    "$set": {
        "is_full": {
            "$or": [
                {"$ifNull": ["$is_full", False]},
                {"$gte": ["$current_count", "$capacity"]},
            ]
        }
    }
}


class MongoSegmentRepository(SegmentRepository):
    """Persists :class:`Segment` documents keyed by ``name``."""

    def __init__(self, collection: Collection) -> None:
        self._collection: Collection = collection

    def list(
        self, family: SegmentFamily | None = None, *, active_only: bool = True
    ) -> List[Segment]:
        query: Dict[str, Any] = {}
        if family is not None:
            query["family"] = family.value
        if active_only:
            query["active"] = True
        cursor = self._collection.find(query).sort([("family", 1), ("ordinal", 1)])
        return [self._deserialize(data) for data in cursor]

    def get(self, name: str) -> Optional[Segment]:
        data = self._collection.find_one({"name": name})
        return self._deserialize(data) if data else None

    def add_if_absent(self, segment: Segment) -> Segment:
        self._collection.update_one(
            {"name": segment.name},
            {"$setOnInsert": self._serialize(segment)},
            upsert=True,
        )
        stored = self.get(segment.name)
        return stored if stored is not None else segment

    def record_insertions(self, name: str, inserted: int) -> Segment:
        data = self._collection.find_one_and_update(
            {"name": name},
            [
                {
                    "$set": {
                        "current_count": {"$add": ["$current_count", inserted]},
                        "needs_rebuild": True,
                    }
                },
                _REFRESH_IS_FULL,
            ],
            return_document=ReturnDocument.AFTER,
        )
        if data is None:
            raise LookupError(f"Segment '{name}' not found")
        return self._deserialize(data)

    def mark_needs_rebuild(self, names: Iterable[str]) -> None:
        targets = sorted(set(names))
        if targets:
            self._collection.update_many(
                {"name": {"$in": targets}}, {"$set": {"needs_rebuild": True}}
            )

    def record_generation(
        self,
        name: str,
        *,
        current_count: int,
        size_bytes: int,
        generation_time_ms: int,
        generated_at: datetime,
    ) -> Segment:
        data = self._collection.find_one_and_update(
            {"name": name},
            [
                {
                    "$set": {
                        "current_count": current_count,
                        "generated_size_bytes": size_bytes,
                        "generation_time_ms": generation_time_ms,
                        "last_generated_at": generated_at,
                        "needs_rebuild": False,
                    }
                },
                _REFRESH_IS_FULL,
            ],
            return_document=ReturnDocument.AFTER,
        )
        if data is None:
            raise LookupError(f"Segment '{name}' not found")
        return self._deserialize(data)

    def _serialize(self, segment: Segment) -> dict:
        return {
            "name": segment.name,
            "family": segment.family.value,
            "ordinal": segment.ordinal,
            "capacity": segment.capacity,
            "current_count": segment.current_count,
            "is_full": segment.is_full,
            "needs_rebuild": segment.needs_rebuild,
            "last_generated_at": segment.last_generated_at,
            "generated_size_bytes": segment.generated_size_bytes,
            "generation_time_ms": segment.generation_time_ms,
            "active": segment.active,
        }

    def _deserialize(self, data: dict) -> Segment:
        return Segment(
            name=data["name"],
            family=SegmentFamily(data["family"]),
            ordinal=int(data["ordinal"]),
            capacity=int(data["capacity"]),
            current_count=int(data.get("current_count", 0)),
            is_full=bool(data.get("is_full", False)),
            needs_rebuild=bool(data.get("needs_rebuild", False)),
            last_generated_at=data.get("last_generated_at"),
            generated_size_bytes=int(data.get("generated_size_bytes", 0)),
            generation_time_ms=int(data.get("generation_time_ms", 0)),
            active=bool(data.get("active", True)),
        )


__all__ = ["MongoSegmentRepository"]
