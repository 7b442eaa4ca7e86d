"""Domain catalog served by an external HTTP service."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import httpx

from sitemapper.domain import CatalogEntity, DomainCatalog, EntityKind

# Ids per lookup request; keeps query strings short.
LOOKUP_CHUNK_SIZE = 200


class HttpDomainCatalog(DomainCatalog):
    """Reads entities from ``GET /entities/{kind}`` and ``/entities/{kind}/{id}``."""

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.Client | None = None,
        timeout: float | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        if client is None:
            self._client = httpx.Client(base_url=self._base_url, timeout=timeout)
            self._owns_client = True
        else:
            self._client = client
            self._owns_client = False

    def list_active_entities(self, kind: EntityKind) -> List[CatalogEntity]:
        response = self._client.get(f"/entities/{kind.value}", params={"active": "true"})
        response.raise_for_status()
        entities = [CatalogEntity.from_mapping(kind, item) for item in response.json()]
        return [entity for entity in entities if entity.is_active]

    def get_entities(
        self, kind: EntityKind, ids: Iterable[str]
    ) -> Dict[str, CatalogEntity]:
        wanted = list(dict.fromkeys(str(value) for value in ids))
        found: Dict[str, CatalogEntity] = {}
        for start in range(0, len(wanted), LOOKUP_CHUNK_SIZE):
            chunk = wanted[start : start + LOOKUP_CHUNK_SIZE]
            response = self._client.get(
                f"/entities/{kind.value}", params={"ids": ",".join(chunk)}
            )
            response.raise_for_status()
            for item in response.json():
                entity = CatalogEntity.from_mapping(kind, item)
                found[entity.id] = entity
        return found

    def get_entity(self, kind: EntityKind, entity_id: str) -> Optional[CatalogEntity]:
        response = self._client.get(f"/entities/{kind.value}/{entity_id}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return CatalogEntity.from_mapping(kind, response.json())

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


__all__ = ["HttpDomainCatalog"]
