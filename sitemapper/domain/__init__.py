"""Public API of the sitemap domain.

Entities, ports and repository contracts are re-exported here so they can be
imported directly from ``sitemapper.domain``.
"""

from .entities import (
    AddMethod,
    Batch,
    BatchStatus,
    CatalogEntity,
    ChangeFrequency,
    EntityKind,
    Entry,
    EntryReferences,
    EntryType,
    GlobalConfig,
    Initiator,
    RebuildMode,
    Segment,
    SegmentFamily,
    artifact_name_for,
    default_capacities,
    reference_field,
    segment_name_for,
)
from .errors import (
    EntityNotFoundError,
    IngestionFailedError,
    SitemapError,
    ValidationError,
)
from .ports import DomainCatalog, FileSink, SinkWriteResult
from .repositories import (
    BatchRepository,
    ConfigRepository,
    EntryQuery,
    EntryRepository,
    SegmentRepository,
)

__all__ = [
    "AddMethod",
    "Batch",
    "BatchRepository",
    "BatchStatus",
    "CatalogEntity",
    "ChangeFrequency",
    "ConfigRepository",
    "DomainCatalog",
    "EntityKind",
    "EntityNotFoundError",
    "Entry",
    "EntryQuery",
    "EntryReferences",
    "EntryRepository",
    "EntryType",
    "FileSink",
    "GlobalConfig",
    "IngestionFailedError",
    "Initiator",
    "RebuildMode",
    "Segment",
    "SegmentFamily",
    "SegmentRepository",
    "SinkWriteResult",
    "SitemapError",
    "ValidationError",
    "artifact_name_for",
    "default_capacities",
    "reference_field",
    "segment_name_for",
]
