from __future__ import annotations

import pytest

from factories import BASE_URL, set_capacities
from sitemapper.domain import (
    EntityNotFoundError,
    EntryType,
    RebuildMode,
    SegmentFamily,
    ValidationError,
)


@pytest.fixture
def populated(container):
    set_capacities(container.config, 4, [SegmentFamily.COMPANIES])
    container.ingestion_service.ingest([f"c{i}" for i in range(1, 7)], SegmentFamily.COMPANIES)
    container.ingestion_service.ingest(["city-damascus"], SegmentFamily.LOCATIONS)
    container.regenerator.rebuild(RebuildMode.FULL)
    return container


def test_distribution_snapshot(populated):
    snapshot = populated.stats_service.distribution_snapshot(SegmentFamily.COMPANIES)

    assert snapshot.to_mapping() == {
        "total_segments": 2,
        "full_segments": 1,
        "partial_segments": 1,
        "empty_segments": 0,
        "total_urls": 6,
        "available_capacity": 2,
        "next_writable_segment": "companies-2",
    }


def test_segment_details(populated):
    details = populated.stats_service.segment_details(SegmentFamily.COMPANIES)

    assert [(d.name, d.urls_count, d.percentage, d.is_full) for d in details] == [
        ("companies-1", 4, 100.0, True),
        ("companies-2", 2, 50.0, False),
    ]
    assert all(detail.size_bytes > 0 for detail in details)
    assert not any(detail.needs_rebuild for detail in details)


def test_get_stats(populated):
    stats = populated.stats_service.get_stats()

    assert stats["total_urls"] == 7
    assert stats["urls_by_type"]["COMPANY"] == 6
    assert stats["urls_by_type"]["CITY"] == 1
    assert stats["urls_by_type"]["STATIC"] == 0
    assert stats["total_segments"] == 3
    assert stats["total_batches"] == 2
    assert stats["last_batch"].batch_number == 2
    assert stats["total_size_bytes"] == sum(d.size_bytes for d in stats["segments"])
    assert stats["last_full_rebuild_at"] is not None


def test_list_batches_pages_newest_first(populated):
    page = populated.stats_service.list_batches(limit=1)

    assert [batch.batch_number for batch in page.batches] == [2]
    assert page.total == 2
    assert page.has_more
    assert not populated.stats_service.list_batches(limit=1, offset=1).has_more


@pytest.mark.parametrize("kwargs", [{"limit": 0}, {"limit": 501}, {"offset": -1}])
def test_list_batches_rejects_bad_paging(container, kwargs):
    with pytest.raises(ValidationError):
        container.stats_service.list_batches(**kwargs)


def test_get_batch(populated):
    assert populated.stats_service.get_batch(1).requested_count == 6
    with pytest.raises(EntityNotFoundError, match="Batch 9 not found"):
        populated.stats_service.get_batch(9)


def test_list_entries_filters_and_pages(populated):
    populated.entries.deactivate_url(f"{BASE_URL}/company-6")

    everything = populated.stats_service.list_entries(limit=4)
    companies = populated.stats_service.list_entries(entry_type=EntryType.COMPANY)
    second = populated.stats_service.list_entries(segment_name="companies-2")
    found = populated.stats_service.list_entries(search="  DAMASCUS ")

    assert (everything.total, everything.pages, len(everything.entries)) == (6, 2, 4)
    assert companies.total == 5
    assert [entry.url for entry in second.entries] == [f"{BASE_URL}/company-5"]
    assert [entry.url for entry in found.entries] == [f"{BASE_URL}/country/sy/city/damascus"]


def test_list_entries_rejects_bad_paging(container):
    with pytest.raises(ValidationError):
        container.stats_service.list_entries(page=0)
    with pytest.raises(ValidationError):
        container.stats_service.list_entries(limit=1000)
