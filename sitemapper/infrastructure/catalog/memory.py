"""Domain catalog held in process memory."""
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Iterable, List

from sitemapper.domain import CatalogEntity, DomainCatalog, EntityKind


class InMemoryDomainCatalog(DomainCatalog):
    def __init__(self, entities: Iterable[CatalogEntity] = ()) -> None:
        self._lock = threading.Lock()
        self._entities: Dict[EntityKind, Dict[str, CatalogEntity]] = {}
        for entity in entities:
            self.add(entity)

    def add(self, entity: CatalogEntity) -> None:
        with self._lock:
            self._entities.setdefault(entity.kind, {})[entity.id] = entity

    def set_active(self, kind: EntityKind, entity_id: str, active: bool) -> CatalogEntity:
        """Flip the active flag of a stored entity and touch its timestamp."""

        with self._lock:
            entity = self._entities[kind][entity_id]
            updated = replace(
                entity, is_active=active, last_modified_at=datetime.now(timezone.utc)
            )
            self._entities[kind][entity_id] = updated
            return updated

    def list_active_entities(self, kind: EntityKind) -> List[CatalogEntity]:
        with self._lock:
            return [
                entity
                for entity in self._entities.get(kind, {}).values()
                if entity.is_active
            ]

    def get_entities(
        self, kind: EntityKind, ids: Iterable[str]
    ) -> Dict[str, CatalogEntity]:
        with self._lock:
            stored = self._entities.get(kind, {})
            return {
                str(entity_id): stored[str(entity_id)]
                for entity_id in ids
                if str(entity_id) in stored
            }


__all__ = ["InMemoryDomainCatalog"]
