"""Singleton aggregate with cached inventory totals."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from .enums import SegmentFamily

HIGH_VOLUME_CAPACITY = 10_000
DEFAULT_CAPACITY = 50_000


def default_capacities(
    high_volume: int = HIGH_VOLUME_CAPACITY, default: int = DEFAULT_CAPACITY
) -> Dict[SegmentFamily, int]:
    return {
        family: high_volume if family.is_numbered else default
        for family in SegmentFamily
    }


@dataclass(frozen=True)
class GlobalConfig:
    """Derived read-cache; never authoritative for per-segment counts."""

    default_capacity_per_family: Dict[SegmentFamily, int] = field(
        default_factory=default_capacities
    )
    total_urls: int = 0
    total_segments: int = 0
    last_full_rebuild_at: Optional[datetime] = None

    def capacity_for(self, family: SegmentFamily) -> int:
        capacity = self.default_capacity_per_family.get(family)
        if capacity:
            return capacity
        return default_capacities()[family]


__all__ = [
    "DEFAULT_CAPACITY",
    "GlobalConfig",
    "HIGH_VOLUME_CAPACITY",
    "default_capacities",
]
