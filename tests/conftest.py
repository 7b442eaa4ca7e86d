"""Shared fixtures wiring the services over in-memory stores."""
from __future__ import annotations

from pathlib import Path

import pytest

from factories import BASE_URL, category, city, companies
from sitemapper.infrastructure import InMemoryDomainCatalog, LocalFileSink
from sitemapper.services.sitemap import SitemapContainer, build_sitemap_container


@pytest.fixture
def catalog() -> InMemoryDomainCatalog:
    entities = companies(30)
    entities += [city(slug) for slug in ("damascus", "aleppo", "homs")]
    entities.append(category("hotels"))
    return InMemoryDomainCatalog(entities)


@pytest.fixture
def sink(tmp_path: Path) -> LocalFileSink:
    return LocalFileSink(tmp_path / "public")


@pytest.fixture
def container(catalog: InMemoryDomainCatalog, sink: LocalFileSink) -> SitemapContainer:
    return build_sitemap_container(
        store="memory", catalog=catalog, sink=sink, base_url=BASE_URL
    )
