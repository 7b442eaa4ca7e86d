"""Sequential first-fit packing of new entries into segments."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from sitemapper.domain import (
    ConfigRepository,
    Segment,
    SegmentFamily,
    SegmentRepository,
    ValidationError,
)


@dataclass(frozen=True)
class SegmentAllocation:
    """Slice of a plan targeting a single segment."""

    segment_name: str
    family: SegmentFamily
    ordinal: int
    capacity: int
    allocate: int
    current_count: int
    resulting_count: int
    will_be_full: bool
    #: ``True`` when the segment does not exist yet and must be created.
    is_new: bool = False

    @property
    def percentage(self) -> float:
        return round(self.resulting_count / self.capacity * 100, 2)

    def to_segment(self) -> Segment:
        return Segment.create(self.family, self.ordinal, self.capacity)

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "segment_name": self.segment_name,
            "ordinal": self.ordinal,
            "allocate": self.allocate,
            "current_count": self.current_count,
            "resulting_count": self.resulting_count,
            "percentage": self.percentage,
            "will_be_full": self.will_be_full,
            "is_new": self.is_new,
        }


@dataclass(frozen=True)
class DistributionPlan:
    family: SegmentFamily
    requested_count: int
    allocations: Tuple[SegmentAllocation, ...]

    @property
    def segments_affected(self) -> Tuple[str, ...]:
        return tuple(allocation.segment_name for allocation in self.allocations)

    @property
    def distribution_map(self) -> Dict[str, int]:
        return {
            allocation.segment_name: allocation.allocate
            for allocation in self.allocations
        }


class SegmentDistributor:
    """Plans how ``count`` new items are packed across segments of a family.

    Lowest-ordinal writable segment first, filled up to capacity before moving
    to the next ordinal; segments that do not exist yet are planned with the
    family's default capacity. Planning never persists anything.
    """

    def __init__(
        self, segments: SegmentRepository, config: ConfigRepository
    ) -> None:
        self._segments = segments
        self._config = config

    def plan(self, count: int, family: SegmentFamily) -> DistributionPlan:
        if count <= 0:
            raise ValidationError("count must be greater than zero")

        existing = self._segments.list(family, active_only=False)
        capacity = self._config.get().capacity_for(family)
        writable = sorted(
            (segment for segment in existing if segment.active and segment.available > 0),
            key=lambda segment: segment.ordinal,
        )
        next_ordinal = max((segment.ordinal for segment in existing), default=0) + 1

        allocations: List[SegmentAllocation] = []
        remaining = count
        while remaining > 0:
            if writable:
                segment = writable.pop(0)
                is_new = False
            else:
                segment = Segment.create(family, next_ordinal, capacity)
                next_ordinal += 1
                is_new = True

            allocate = min(remaining, segment.available)
            resulting = segment.current_count + allocate
            allocations.append(
                SegmentAllocation(
                    segment_name=segment.name,
                    family=family,
                    ordinal=segment.ordinal,
                    capacity=segment.capacity,
                    allocate=allocate,
                    current_count=segment.current_count,
                    resulting_count=resulting,
                    will_be_full=resulting >= segment.capacity,
                    is_new=is_new,
                )
            )
            remaining -= allocate

        return DistributionPlan(
            family=family, requested_count=count, allocations=tuple(allocations)
        )


__all__ = ["DistributionPlan", "SegmentAllocation", "SegmentDistributor"]
