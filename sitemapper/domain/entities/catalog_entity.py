"""Read model of a domain entity published by the catalog."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from .enums import EntityKind


@dataclass(frozen=True)
class CatalogEntity:
    """Company, category or location as seen by the sitemap engine."""

    id: str
    kind: EntityKind
    #: URL path of the entity page relative to the site base URL.
    canonical_slug: str
    is_active: bool = True
    last_modified_at: Optional[datetime] = None
    #: Ids of parent entities, e.g. ``{"country_id": "sy"}`` for a city.
    related: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(
        cls, kind: EntityKind, data: Mapping[str, Any]
    ) -> "CatalogEntity":
        """Build an entity from a catalog payload or stored document."""

        identifier = data.get("id", data.get("_id"))
        if identifier in (None, ""):
            raise ValueError("catalog entity without id")
        slug = data.get("canonical_slug", data.get("slug"))
        if slug is None:
            raise ValueError(f"catalog entity '{identifier}' without slug")
        last_modified = data.get("last_modified_at", data.get("updated_at"))
        if isinstance(last_modified, str):
            last_modified = datetime.fromisoformat(last_modified)
        related = data.get("related") or {}
        return cls(
            id=str(identifier),
            kind=kind,
            canonical_slug=str(slug).strip("/"),
            is_active=bool(data.get("is_active", True)),
            last_modified_at=last_modified,
            related={str(key): str(value) for key, value in related.items()},
        )


__all__ = ["CatalogEntity"]
