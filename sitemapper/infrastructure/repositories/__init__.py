"""Repository implementations backed by MongoDB or process memory."""

from .indexes import (
    BATCHES_COLLECTION,
    CONFIG_COLLECTION,
    COUNTERS_COLLECTION,
    ENTRIES_COLLECTION,
    SEGMENTS_COLLECTION,
    ensure_sitemap_indexes,
)
from .memory import (
    InMemoryBatchRepository,
    InMemoryConfigRepository,
    InMemoryEntryRepository,
    InMemorySegmentRepository,
)
from .mongo_batch_repository import MongoBatchRepository
from .mongo_config_repository import MongoConfigRepository
from .mongo_entry_repository import MongoEntryRepository
from .mongo_segment_repository import MongoSegmentRepository

__all__ = [
    "BATCHES_COLLECTION",
    "CONFIG_COLLECTION",
    "COUNTERS_COLLECTION",
    "ENTRIES_COLLECTION",
    "InMemoryBatchRepository",
    "InMemoryConfigRepository",
    "InMemoryEntryRepository",
    "InMemorySegmentRepository",
    "MongoBatchRepository",
    "MongoConfigRepository",
    "MongoEntryRepository",
    "MongoSegmentRepository",
    "SEGMENTS_COLLECTION",
    "ensure_sitemap_indexes",
]
