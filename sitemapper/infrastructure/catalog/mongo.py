"""Domain catalog read straight from the site's MongoDB collections."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from sitemapper.domain import CatalogEntity, DomainCatalog, EntityKind

CATALOG_COLLECTIONS: Dict[EntityKind, str] = {
    EntityKind.COMPANY: "companies",
    EntityKind.COUNTRY: "countries",
    EntityKind.CITY: "cities",
    EntityKind.SUB_AREA: "sub_areas",
    EntityKind.CATEGORY: "categories",
    EntityKind.SUB_CATEGORY: "sub_categories",
}

# Used when a document has no ``canonical_slug`` of its own.
PATH_TEMPLATES: Dict[EntityKind, str] = {
    EntityKind.COMPANY: "{slug}",
    EntityKind.COUNTRY: "country/{slug}",
    EntityKind.CITY: "country/{country_slug}/city/{slug}",
    EntityKind.SUB_AREA: "country/{country_slug}/city/{city_slug}/sub-area/{slug}",
    EntityKind.CATEGORY: "category/{slug}",
    EntityKind.SUB_CATEGORY: "category/{category_slug}/{slug}",
}

_RELATED_FIELDS = (
    "company_id",
    "country_id",
    "city_id",
    "sub_area_id",
    "category_id",
    "sub_category_id",
)

_PROJECTION = {
    "_id": 1,
    "slug": 1,
    "canonical_slug": 1,
    "is_active": 1,
    "updated_at": 1,
    "country_slug": 1,
    "city_slug": 1,
    "category_slug": 1,
    **{field: 1 for field in _RELATED_FIELDS},
}


class MongoDomainCatalog(DomainCatalog):
    """Maps catalog documents (``slug``, ``is_active``, ``updated_at``) to entities."""

    def __init__(
        self,
        database: Any,
        *,
        collections: Mapping[EntityKind, str] | None = None,
        path_templates: Mapping[EntityKind, str] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._database = database
        self._collections = dict(collections or CATALOG_COLLECTIONS)
        self._templates = dict(path_templates or PATH_TEMPLATES)
        self._logger = logger or logging.getLogger("sitemapper.catalog")

    def list_active_entities(self, kind: EntityKind) -> List[CatalogEntity]:
        cursor = self._collection(kind).find({"is_active": {"$ne": False}}, _PROJECTION)
        return list(self._convert(kind, cursor))

    def get_entities(
        self, kind: EntityKind, ids: Iterable[str]
    ) -> Dict[str, CatalogEntity]:
        wanted = list(dict.fromkeys(str(value) for value in ids))
        if not wanted:
            return {}
        cursor = self._collection(kind).find({"_id": {"$in": wanted}}, _PROJECTION)
        return {entity.id: entity for entity in self._convert(kind, cursor)}

    def _collection(self, kind: EntityKind) -> Any:
        return self._database[self._collections[kind]]

    def _convert(
        self, kind: EntityKind, documents: Iterable[dict]
    ) -> Iterator[CatalogEntity]:
        for document in documents:
            slug = self._canonical_slug(kind, document)
            if slug is None:
                continue
            payload = dict(document)
            payload["canonical_slug"] = slug
            payload["related"] = {
                field: document[field]
                for field in _RELATED_FIELDS
                if document.get(field) is not None
            }
            yield CatalogEntity.from_mapping(kind, payload)

    def _canonical_slug(self, kind: EntityKind, document: dict) -> Optional[str]:
        if document.get("canonical_slug"):
            return str(document["canonical_slug"])
        try:
            return self._templates[kind].format(**document)
        except KeyError as exc:
            self._logger.warning(
                "Skipping %s '%s': missing field %s for its URL",
                kind.value,
                document.get("_id"),
                exc,
            )
            return None


__all__ = ["CATALOG_COLLECTIONS", "MongoDomainCatalog", "PATH_TEMPLATES"]
