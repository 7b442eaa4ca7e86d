from __future__ import annotations

from dataclasses import replace

import pytest

from sitemapper.application import SegmentDistributor
from sitemapper.domain import Segment, SegmentFamily, ValidationError
from sitemapper.infrastructure import InMemoryConfigRepository, InMemorySegmentRepository


@pytest.fixture
def segments() -> InMemorySegmentRepository:
    return InMemorySegmentRepository()


@pytest.fixture
def distributor(segments: InMemorySegmentRepository) -> SegmentDistributor:
    return SegmentDistributor(segments, InMemoryConfigRepository())


def test_plan_splits_into_sequential_company_segments(distributor):
    plan = distributor.plan(25_000, SegmentFamily.COMPANIES)

    assert plan.segments_affected == ("companies-1", "companies-2", "companies-3")
    assert [a.allocate for a in plan.allocations] == [10_000, 10_000, 5_000]
    assert [a.will_be_full for a in plan.allocations] == [True, True, False]
    assert all(a.is_new for a in plan.allocations)
    assert sum(plan.distribution_map.values()) == 25_000


def test_plan_fills_lowest_writable_segment_first(segments, distributor):
    segments.add_if_absent(Segment.create(SegmentFamily.COMPANIES, 1, 10_000).with_count(9_995))
    segments.add_if_absent(Segment.create(SegmentFamily.COMPANIES, 2, 10_000).with_count(10))

    plan = distributor.plan(12, SegmentFamily.COMPANIES)

    assert plan.distribution_map == {"companies-1": 5, "companies-2": 7}
    first, second = plan.allocations
    assert first.current_count == 9_995 and first.resulting_count == 10_000
    assert first.will_be_full
    assert not second.is_new and second.resulting_count == 17


def test_plan_skips_full_and_inactive_segments(segments, distributor):
    segments.add_if_absent(Segment.create(SegmentFamily.LOCATIONS, 1, 5).with_count(5))
    inactive = Segment.create(SegmentFamily.LOCATIONS, 2, 5)
    segments.add_if_absent(replace(inactive, active=False))

    plan = distributor.plan(3, SegmentFamily.LOCATIONS)

    assert plan.segments_affected == ("locations-3",)
    assert plan.allocations[0].is_new
    assert plan.allocations[0].capacity == 50_000


def test_plan_uses_configured_capacity_for_new_segments(segments):
    config = InMemoryConfigRepository()
    config.set_capacity(SegmentFamily.CATEGORIES_MIXED, 4)
    distributor = SegmentDistributor(segments, config)

    plan = distributor.plan(9, SegmentFamily.CATEGORIES_MIXED)

    assert plan.distribution_map == {
        "categories-mixed": 4,
        "categories-mixed-2": 4,
        "categories-mixed-3": 1,
    }


def test_plan_does_not_persist_anything(segments, distributor):
    distributor.plan(3, SegmentFamily.STATIC)

    assert segments.list(active_only=False) == []


@pytest.mark.parametrize("count", [0, -5])
def test_plan_rejects_non_positive_counts(distributor, count):
    with pytest.raises(ValidationError):
        distributor.plan(count, SegmentFamily.COMPANIES)
