from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from factories import BASE_URL, companies, company, set_capacities
from sitemapper.application import IngestionService
from sitemapper.domain import (
    AddMethod,
    BatchStatus,
    EntityKind,
    EntryType,
    IngestionFailedError,
    Initiator,
    SegmentFamily,
    ValidationError,
)
from sitemapper.infrastructure import (
    InMemoryBatchRepository,
    InMemoryConfigRepository,
    InMemoryDomainCatalog,
    InMemoryEntryRepository,
    InMemorySegmentRepository,
)
from sitemapper.services.sitemap import build_sitemap_container


class _FailingEntryRepository(InMemoryEntryRepository):
    """Raises for every insert targeting one of ``failing`` segments."""

    def __init__(self, *failing: str) -> None:
        super().__init__()
        self._failing = set(failing)

    def insert_many(self, entries):
        if any(entry.segment_name in self._failing for entry in entries):
            raise RuntimeError("store unavailable")
        return super().insert_many(entries)


def _service(entries, catalog, capacity: int = 10):
    segments = InMemorySegmentRepository()
    config = InMemoryConfigRepository()
    set_capacities(config, capacity)
    batches = InMemoryBatchRepository()
    service = IngestionService(
        entries, segments, batches, config, catalog, base_url=BASE_URL
    )
    return service, segments, batches


def test_ingest_25000_companies_fills_three_segments(sink):
    ids = [f"c{index}" for index in range(1, 25_001)]
    container = build_sitemap_container(
        store="memory",
        catalog=InMemoryDomainCatalog(companies(25_000)),
        sink=sink,
        base_url=BASE_URL,
    )

    result = container.ingestion_service.ingest(ids, SegmentFamily.COMPANIES)

    assert result.status is BatchStatus.COMPLETED
    assert result.added_count == 25_000
    assert result.skipped_count == 0
    assert result.segments_affected == ("companies-1", "companies-2", "companies-3")
    counts = {s.name: (s.current_count, s.is_full) for s in container.segments.list()}
    assert counts == {
        "companies-1": (10_000, True),
        "companies-2": (10_000, True),
        "companies-3": (5_000, False),
    }
    batch = container.batches.get(result.batch_number)
    assert sum(batch.distribution_map.values()) == batch.requested_count == 25_000

    again = container.ingestion_service.ingest(ids, SegmentFamily.COMPANIES)

    assert again.added_count == 0
    assert again.skipped_count == 25_000
    assert again.segments_written == ()
    assert {s.name: (s.current_count, s.is_full) for s in container.segments.list()} == counts
    assert container.entries.count_active() == 25_000


def test_ingest_assigns_dense_positions_and_metadata(container):
    set_capacities(container.config, 4, [SegmentFamily.COMPANIES])

    result = container.ingestion_service.ingest(
        ["c1", "c2", "c3", "c4", "c5", "c6"],
        SegmentFamily.COMPANIES,
        method=AddMethod.TOP_RATED,
        method_params={"min_rating": 4},
        initiator=Initiator(id="u1", name="Admin"),
    )

    first = container.entries.list_active_in_segment("companies-1")
    second = container.entries.list_active_in_segment("companies-2")
    assert [entry.position_in_segment for entry in first] == [1, 2, 3, 4]
    assert [entry.position_in_segment for entry in second] == [1, 2]
    assert [entry.url for entry in second] == [
        f"{BASE_URL}/company-5",
        f"{BASE_URL}/company-6",
    ]
    entry = first[0]
    assert entry.entry_type is EntryType.COMPANY
    assert entry.references.company_id == "c1"
    assert entry.priority == 0.9
    assert entry.change_frequency.value == "monthly"
    assert entry.batch_number == result.batch_number
    assert entry.add_method is AddMethod.TOP_RATED
    assert entry.added_by == "u1"
    assert entry.last_modified == company(1).last_modified_at

    batch = container.batches.get(result.batch_number)
    assert batch.method_params == {"min_rating": 4}
    assert batch.initiator_name == "Admin"
    assert batch.completed_at is not None


def test_ingest_tops_up_partial_segment_after_existing_rows(container):
    set_capacities(container.config, 4, [SegmentFamily.COMPANIES])
    container.ingestion_service.ingest(["c1", "c2"], SegmentFamily.COMPANIES)

    result = container.ingestion_service.ingest(["c3", "c4", "c5"], SegmentFamily.COMPANIES)

    assert result.distribution_map == {"companies-1": 2, "companies-2": 1}
    positions = [
        e.position_in_segment for e in container.entries.list_active_in_segment("companies-1")
    ]
    assert positions == [1, 2, 3, 4]
    assert container.segments.get("companies-1").is_full


def test_ingest_counts_duplicates_and_unknown_ids_as_skipped(container, catalog):
    catalog.add(company(99, active=False))
    container.ingestion_service.ingest(["c1"], SegmentFamily.COMPANIES)

    result = container.ingestion_service.ingest(
        ["c1", "c2", "c2", "missing", "c99"], SegmentFamily.COMPANIES
    )

    assert result.added_count == 1
    assert result.skipped_count == 4
    assert result.failed_count == 0
    assert container.entries.count_active() == 2


def test_ingest_does_not_reintroduce_deactivated_url(container):
    container.ingestion_service.ingest(["c1"], SegmentFamily.COMPANIES)
    container.entries.deactivate_url(f"{BASE_URL}/company-1")

    result = container.ingestion_service.ingest(["c1"], SegmentFamily.COMPANIES)

    assert result.added_count == 0
    assert result.skipped_count == 1
    assert container.segments.get("companies-1").current_count == 1
    assert container.config.get().total_urls == 0


def test_ingest_marks_segments_dirty_without_rebuilding(container, sink):
    result = container.ingestion_service.ingest(["c1", "c2"], SegmentFamily.COMPANIES)

    assert result.segments_written == ("companies-1",)
    assert container.segments.get("companies-1").needs_rebuild
    assert sink.list_artifacts() == []
    assert container.config.get().total_urls == 2
    assert container.config.get().total_segments == 1


def test_ingest_skipping_everything_creates_no_segment(container):
    result = container.ingestion_service.ingest(["missing"], SegmentFamily.COMPANIES)

    assert result.added_count == 0
    assert result.segments_affected == ("companies-1",)
    assert container.segments.list(active_only=False) == []


def test_ingest_locations_defaults_to_city_pages(container):
    result = container.ingestion_service.ingest(
        ["city-damascus", "city-aleppo"], SegmentFamily.LOCATIONS
    )

    assert result.added_count == 2
    entries = container.entries.list_active_in_segment("locations")
    assert [entry.url for entry in entries] == [
        f"{BASE_URL}/country/sy/city/damascus",
        f"{BASE_URL}/country/sy/city/aleppo",
    ]
    assert entries[0].entry_type is EntryType.CITY
    assert entries[0].references.city_id == "city-damascus"
    assert entries[0].references.country_id == "sy"
    assert entries[0].priority == 0.8


@pytest.mark.parametrize(
    "kwargs",
    [
        {"candidate_ids": [], "family": SegmentFamily.COMPANIES},
        {"candidate_ids": ["c1"], "family": SegmentFamily.COMPANIES, "priority": 1.5},
        {"candidate_ids": ["c1"], "family": SegmentFamily.COMPANIES, "change_frequency": "sometimes"},
        {"candidate_ids": ["c1"], "family": SegmentFamily.CATEGORIES_MIXED},
        {"candidate_ids": ["c1"], "family": SegmentFamily.STATIC},
        {
            "candidate_ids": ["c1"],
            "family": SegmentFamily.LOCATIONS,
            "entry_type": EntryType.COMPANY,
        },
    ],
)
def test_ingest_rejects_invalid_requests_without_writing(container, kwargs):
    with pytest.raises(ValidationError):
        container.ingestion_service.ingest(**kwargs)

    assert container.batches.count() == 0
    assert container.segments.list(active_only=False) == []


def test_failing_slice_is_isolated_from_the_others(catalog):
    entries = _FailingEntryRepository("companies-2")
    service, segments, batches = _service(entries, catalog, capacity=3)

    result = service.ingest([f"c{index}" for index in range(1, 8)], SegmentFamily.COMPANIES)

    assert result.status is BatchStatus.COMPLETED
    assert result.added_count == 4
    assert result.failed_count == 3
    assert result.failed_segments == ("companies-2",)
    assert result.segments_written == ("companies-1", "companies-3")
    assert segments.get("companies-2").current_count == 0
    assert segments.get("companies-3").current_count == 1
    batch = batches.get(result.batch_number)
    assert batch.status is BatchStatus.COMPLETED
    assert batch.failed_count == 3


def test_batch_is_failed_when_every_slice_fails(catalog):
    entries = _FailingEntryRepository("companies-1")
    service, _segments, batches = _service(entries, catalog)

    with pytest.raises(IngestionFailedError) as excinfo:
        service.ingest(["c1", "c2"], SegmentFamily.COMPANIES)

    batch = batches.get(excinfo.value.batch_number)
    assert batch.status is BatchStatus.FAILED
    assert batch.failed_count == 2
    assert batch.added_count == 0


def test_concurrent_ingestions_never_overfill_segments(container):
    set_capacities(container.config, 5, [SegmentFamily.COMPANIES])
    chunks = [[f"c{index}" for index in range(start, start + 5)] for start in range(1, 31, 5)]

    with ThreadPoolExecutor(max_workers=6) as executor:
        results = list(
            executor.map(
                lambda ids: container.ingestion_service.ingest(ids, SegmentFamily.COMPANIES),
                chunks,
            )
        )

    assert sum(result.added_count for result in results) == 30
    for segment in container.segments.list():
        assert segment.current_count <= segment.capacity
        positions = [
            entry.position_in_segment
            for entry in container.entries.list_active_in_segment(segment.name)
        ]
        assert positions == list(range(1, segment.current_count + 1))
    assert container.entries.active_reference_ids(
        EntityKind.COMPANY, [f"c{index}" for index in range(1, 31)]
    ) == {f"c{index}" for index in range(1, 31)}


def test_preview_matches_ingest_plan(container):
    set_capacities(container.config, 4, [SegmentFamily.COMPANIES])

    plan = container.ingestion_service.preview(6, SegmentFamily.COMPANIES)
    result = container.ingestion_service.ingest(
        [f"c{index}" for index in range(1, 7)], SegmentFamily.COMPANIES
    )

    assert plan.distribution_map == result.distribution_map
    assert container.batches.count() == 1
