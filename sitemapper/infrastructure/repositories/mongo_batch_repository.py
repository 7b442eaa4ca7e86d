"""Batch ledger backed by MongoDB."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pymongo import ReturnDocument
from pymongo.collection import Collection

from sitemapper.domain import (
    AddMethod,
    Batch,
    BatchRepository,
    BatchStatus,
    SegmentFamily,
)

BATCH_COUNTER_ID = "batch_number"


class MongoBatchRepository(BatchRepository):
    """Stores batches and reserves their numbers through an atomic counter."""

    def __init__(self, collection: Collection, counters: Collection) -> None:
        self._collection: Collection = collection
        self._counters: Collection = counters

    def next_batch_number(self) -> int:
        data = self._counters.find_one_and_update(
            {"_id": BATCH_COUNTER_ID},
            {"$inc": {"value": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(data["value"])

    def add(self, batch: Batch) -> None:
        self._collection.insert_one(self._serialize(batch))

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
        changes = {
            "status": status.value,
            "added_count": added_count,
            "skipped_count": skipped_count,
            "failed_count": failed_count,
            "completed_at": completed_at,
        }
        if notes is not None:
            changes["notes"] = notes
        self._collection.update_one({"batch_number": batch_number}, {"$set": changes})

    def get(self, batch_number: int) -> Optional[Batch]:
        data = self._collection.find_one({"batch_number": batch_number})
        return self._deserialize(data) if data else None

    def list_recent(self, *, limit: int, offset: int = 0) -> List[Batch]:
        cursor = (
            self._collection.find().sort("batch_number", -1).skip(offset).limit(limit)
        )
        return [self._deserialize(data) for data in cursor]

    def count(self) -> int:
        return self._collection.count_documents({})

    def _serialize(self, batch: Batch) -> dict:
        return {
            "batch_number": batch.batch_number,
            "family": batch.family.value,
            "requested_count": batch.requested_count,
            "method": batch.method.value,
            "method_params": batch.method_params,
            "distribution_map": batch.distribution_map,
            "segments_affected": list(batch.segments_affected),
            "initiator_id": batch.initiator_id,
            "initiator_name": batch.initiator_name,
            "status": batch.status.value,
            "notes": batch.notes,
            "added_count": batch.added_count,
            "skipped_count": batch.skipped_count,
            "failed_count": batch.failed_count,
            "created_at": batch.created_at,
            "completed_at": batch.completed_at,
        }

    def _deserialize(self, data: dict) -> Batch:
        return Batch(
            batch_number=int(data["batch_number"]),
            family=SegmentFamily(data["family"]),
            requested_count=int(data["requested_count"]),
            method=AddMethod(data["method"]),
            distribution_map={
                str(name): int(count)
                for name, count in (data.get("distribution_map") or {}).items()
            },
            segments_affected=tuple(data.get("segments_affected") or ()),
            method_params=dict(data.get("method_params") or {}),
            initiator_id=data.get("initiator_id"),
            initiator_name=data.get("initiator_name"),
            status=BatchStatus(data.get("status", BatchStatus.PROCESSING.value)),
            notes=data.get("notes"),
            added_count=int(data.get("added_count", 0)),
            skipped_count=int(data.get("skipped_count", 0)),
            failed_count=int(data.get("failed_count", 0)),
            created_at=data["created_at"],
            completed_at=data.get("completed_at"),
        )


__all__ = ["MongoBatchRepository"]
