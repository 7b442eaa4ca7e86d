"""Builders of catalog entities shared by the tests."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from sitemapper.domain import CatalogEntity, EntityKind, SegmentFamily

BASE_URL = "https://example.com"


def company(index: int, *, active: bool = True) -> CatalogEntity:
    return CatalogEntity(
        id=f"c{index}",
        kind=EntityKind.COMPANY,
        canonical_slug=f"company-{index}",
        is_active=active,
        last_modified_at=datetime(2024, 1, 1 + index % 28, tzinfo=timezone.utc),
    )


def companies(count: int, start: int = 1) -> list[CatalogEntity]:
    return [company(index) for index in range(start, start + count)]


def city(slug: str, country: str = "sy", *, active: bool = True) -> CatalogEntity:
    return CatalogEntity(
        id=f"city-{slug}",
        kind=EntityKind.CITY,
        canonical_slug=f"country/{country}/city/{slug}",
        is_active=active,
        related={"country_id": country},
    )


def category(slug: str, *, active: bool = True) -> CatalogEntity:
    return CatalogEntity(
        id=f"cat-{slug}",
        kind=EntityKind.CATEGORY,
        canonical_slug=f"category/{slug}",
        is_active=active,
    )


def set_capacities(
    config, capacity: int, families: Iterable[SegmentFamily] = tuple(SegmentFamily)
) -> None:
    for family in families:
        config.set_capacity(family, capacity)
