"""Global configuration stored as a single MongoDB document."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Mapping

from pymongo.collection import Collection

from sitemapper.domain import (
    ConfigRepository,
    GlobalConfig,
    SegmentFamily,
    ValidationError,
    default_capacities,
)

CONFIG_ID = "global"


class MongoConfigRepository(ConfigRepository):
    """Reads and updates the ``global`` configuration document."""

    def __init__(
        self,
        collection: Collection,
        capacities: Mapping[SegmentFamily, int] | None = None,
    ) -> None:
        self._collection: Collection = collection
        self._capacities: Dict[SegmentFamily, int] = dict(
            capacities or default_capacities()
        )

    def get(self) -> GlobalConfig:
        data = self._collection.find_one({"_id": CONFIG_ID}) or {}
        capacities = dict(self._capacities)
        for family, capacity in (data.get("capacities") or {}).items():
            capacities[SegmentFamily(family)] = int(capacity)
        return GlobalConfig(
            default_capacity_per_family=capacities,
            total_urls=int(data.get("total_urls", 0)),
            total_segments=int(data.get("total_segments", 0)),
            last_full_rebuild_at=data.get("last_full_rebuild_at"),
        )

    def save_totals(self, *, total_urls: int, total_segments: int) -> None:
        self._update({"total_urls": total_urls, "total_segments": total_segments})

    def record_full_rebuild(self, at: datetime) -> None:
        self._update({"last_full_rebuild_at": at})

    def set_capacity(self, family: SegmentFamily, capacity: int) -> None:
        if capacity <= 0:
            raise ValidationError("capacity must be greater than zero")
        self._update({f"capacities.{family.value}": capacity})

    def _update(self, changes: dict) -> None:
        self._collection.update_one({"_id": CONFIG_ID}, {"$set": changes}, upsert=True)


__all__ = ["MongoConfigRepository"]
