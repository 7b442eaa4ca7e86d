"""Infrastructure public API for the sitemap engine.

Exposes concrete implementations and helpers so consumers can import from
``sitemapper.infrastructure`` directly.
"""

from .catalog import HttpDomainCatalog, InMemoryDomainCatalog, MongoDomainCatalog
from .database import MongoClientFactory, MongoSettings
from .file_sink import LocalFileSink
from .repositories import (
    InMemoryBatchRepository,
    InMemoryConfigRepository,
    InMemoryEntryRepository,
    InMemorySegmentRepository,
    MongoBatchRepository,
    MongoConfigRepository,
    MongoEntryRepository,
    MongoSegmentRepository,
    ensure_sitemap_indexes,
)
from .xml_codec import format_bytes, parse_index, parse_urlset

__all__ = [
    "HttpDomainCatalog",
    "InMemoryBatchRepository",
    "InMemoryConfigRepository",
    "InMemoryDomainCatalog",
    "InMemoryEntryRepository",
    "InMemorySegmentRepository",
    "LocalFileSink",
    "MongoBatchRepository",
    "MongoClientFactory",
    "MongoConfigRepository",
    "MongoDomainCatalog",
    "MongoEntryRepository",
    "MongoSegmentRepository",
    "MongoSettings",
    "ensure_sitemap_indexes",
    "format_bytes",
    "parse_index",
    "parse_urlset",
]
