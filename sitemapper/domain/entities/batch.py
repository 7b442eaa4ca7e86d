"""Provenance record of a bulk ingestion."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from .enums import AddMethod, BatchStatus, SegmentFamily


@dataclass(frozen=True)
class Initiator:
    """Actor that requested an operation."""

    id: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class Batch:
    """Immutable record of one ingestion operation.

    ``distribution_map`` holds the planned allocation and always sums to
    ``requested_count``; entries skipped as duplicates are counted in
    ``skipped_count`` instead of being subtracted from the map.
    """

    batch_number: int
    family: SegmentFamily
    requested_count: int
    method: AddMethod
    distribution_map: Dict[str, int]
    segments_affected: Tuple[str, ...]
    method_params: Dict[str, Any] = field(default_factory=dict)
    initiator_id: Optional[str] = None
    initiator_name: Optional[str] = None
    status: BatchStatus = BatchStatus.PROCESSING
    notes: Optional[str] = None
    added_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None


__all__ = ["Batch", "Initiator"]
