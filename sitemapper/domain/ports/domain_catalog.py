"""Input port giving read access to canonical domain entities."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional

from sitemapper.domain.entities import CatalogEntity, EntityKind


class DomainCatalog(ABC):
    """Defines how the engine looks up companies, categories and locations."""

    @abstractmethod
    def list_active_entities(self, kind: EntityKind) -> Iterable[CatalogEntity]:
        """List every active entity of ``kind``."""

    @abstractmethod
    def get_entities(
        self, kind: EntityKind, ids: Iterable[str]
    ) -> Dict[str, CatalogEntity]:
        """Fetch entities by id, active or not; unknown ids are left out."""

    def get_entity(self, kind: EntityKind, entity_id: str) -> Optional[CatalogEntity]:
        return self.get_entities(kind, [entity_id]).get(entity_id)
