"""Repository interfaces used by the application layer."""
from .batch_repository import BatchRepository
from .config_repository import ConfigRepository
from .entry_repository import EntryQuery, EntryRepository
from .segment_repository import SegmentRepository

__all__ = [
    "BatchRepository",
    "ConfigRepository",
    "EntryQuery",
    "EntryRepository",
    "SegmentRepository",
]
