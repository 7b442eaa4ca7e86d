"""Entities of the sitemap inventory."""
from .batch import Batch, Initiator
from .catalog_entity import CatalogEntity
from .entry import Entry, EntryReferences, reference_field
from .enums import (
    AddMethod,
    BatchStatus,
    ChangeFrequency,
    EntityKind,
    EntryType,
    RebuildMode,
    SegmentFamily,
)
from .global_config import GlobalConfig, default_capacities
from .segment import Segment, artifact_name_for, segment_name_for

__all__ = [
    "AddMethod",
    "Batch",
    "BatchStatus",
    "CatalogEntity",
    "ChangeFrequency",
    "EntityKind",
    "Entry",
    "EntryReferences",
    "EntryType",
    "GlobalConfig",
    "Initiator",
    "RebuildMode",
    "Segment",
    "SegmentFamily",
    "artifact_name_for",
    "default_capacities",
    "reference_field",
    "segment_name_for",
]
