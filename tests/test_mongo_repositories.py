from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from pymongo import ReturnDocument
from pymongo.errors import BulkWriteError, OperationFailure

from sitemapper.domain import (
    ChangeFrequency,
    EntityKind,
    Entry,
    EntryReferences,
    EntryType,
    SegmentFamily,
    ValidationError,
)
from sitemapper.infrastructure import (
    MongoBatchRepository,
    MongoConfigRepository,
    MongoEntryRepository,
    MongoSegmentRepository,
    ensure_sitemap_indexes,
)
from sitemapper.infrastructure.repositories.mongo_entry_repository import IN_CHUNK_SIZE

_NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _entry(url: str = "https://example.com/company-1") -> Entry:
    return Entry(
        url=url,
        entry_type=EntryType.COMPANY,
        canonical_slug="company-1",
        segment_name="companies-1",
        position_in_segment=1,
        priority=0.9,
        change_frequency=ChangeFrequency.MONTHLY,
        references=EntryReferences(company_id="c1"),
        last_modified=_NOW,
        added_at=_NOW,
    )


def test_ensure_sitemap_indexes_ignores_existing_index_conflict():
    database = MagicMock()
    collection = database.__getitem__.return_value
    error = OperationFailure(
        "Index already exists with a different name: url_1",
        code=85,
        details={"errmsg": "Index already exists with a different name: url_1"},
    )
    collection.create_index.side_effect = [error] + [None] * 13

    ensure_sitemap_indexes(database)

    assert collection.create_index.call_count == 14


def test_ensure_sitemap_indexes_raises_for_unhandled_operation_failure():
    database = MagicMock()
    error = OperationFailure("other failure", code=42, details={"errmsg": "other failure"})
    database.__getitem__.return_value.create_index.side_effect = error

    with pytest.raises(OperationFailure):
        ensure_sitemap_indexes(database)


def test_insert_many_flattens_references_and_is_unordered():
    collection = MagicMock()
    collection.insert_many.return_value.inserted_ids = [1]

    inserted = MongoEntryRepository(collection).insert_many([_entry()])

    assert inserted == 1
    [documents], kwargs = collection.insert_many.call_args
    assert kwargs == {"ordered": False}
    assert documents[0]["company_id"] == "c1"
    assert documents[0]["city_id"] is None
    assert documents[0]["entry_type"] == "COMPANY"
    assert documents[0]["change_frequency"] == "monthly"


def test_insert_many_tolerates_duplicate_urls():
    collection = MagicMock()
    collection.insert_many.side_effect = BulkWriteError(
        {"writeErrors": [{"code": 11000, "errmsg": "duplicate key"}], "nInserted": 2}
    )

    assert MongoEntryRepository(collection).insert_many([_entry(), _entry("b"), _entry("c")]) == 2


def test_insert_many_reraises_other_write_errors():
    collection = MagicMock()
    collection.insert_many.side_effect = BulkWriteError(
        {"writeErrors": [{"code": 121, "errmsg": "validation"}], "nInserted": 0}
    )

    with pytest.raises(BulkWriteError):
        MongoEntryRepository(collection).insert_many([_entry()])


def test_get_by_url_deserializes_stored_document():
    collection = MagicMock()
    repository = MongoEntryRepository(collection)
    collection.insert_many.return_value.inserted_ids = [1]
    repository.insert_many([_entry()])
    [documents], _ = collection.insert_many.call_args
    collection.find_one.return_value = dict(documents[0], _id="oid")

    assert repository.get_by_url("https://example.com/company-1") == _entry()


def test_existing_urls_queries_in_chunks():
    collection = MagicMock()
    collection.find.return_value = [{"url": "u0"}]
    urls = [f"u{i}" for i in range(IN_CHUNK_SIZE + 1)]

    found = MongoEntryRepository(collection).existing_urls(urls, active_only=True)

    assert found == {"u0"}
    assert collection.find.call_count == 2
    query = collection.find.call_args_list[1].args[0]
    assert query == {"url": {"$in": [urls[-1]]}, "active": True}


def test_deactivate_url_returns_owning_segment():
    collection = MagicMock()
    collection.find_one_and_update.return_value = {"segment_name": "companies-1"}
    repository = MongoEntryRepository(collection)

    assert repository.deactivate_url("https://example.com/company-1") == "companies-1"
    query, update = collection.find_one_and_update.call_args.args
    assert query == {"url": "https://example.com/company-1", "active": True}
    assert update == {"$set": {"active": False}}

    collection.find_one_and_update.return_value = None
    assert repository.deactivate_url("https://example.com/missing") is None


def test_unlisted_references_are_grouped_from_the_entry_side():
    collection = MagicMock()
    collection.aggregate.return_value = [
        {"_id": {"segment": "companies-1", "reference": "c1"}},
        {"_id": {"segment": "companies-1", "reference": "c3"}},
        {"_id": {"segment": "companies-2", "reference": "c2"}},
    ]
    active_ids = {f"c{i}" for i in range(2, IN_CHUNK_SIZE * 3)}

    unlisted = MongoEntryRepository(collection).unlisted_references(
        EntityKind.COMPANY, active_ids
    )

    assert unlisted == {"companies-1": {"c1"}}
    [pipeline], kwargs = collection.aggregate.call_args
    assert pipeline[0] == {"$match": {"company_id": {"$ne": None}, "active": True}}
    assert kwargs == {"allowDiskUse": True}


def test_deactivate_references_updates_one_segment_in_chunks():
    collection = MagicMock()
    collection.update_many.return_value.modified_count = 2
    ids = [f"c{i}" for i in range(IN_CHUNK_SIZE + 1)]

    count = MongoEntryRepository(collection).deactivate_references(
        EntityKind.COMPANY, "companies-1", ids
    )

    assert count == 4
    assert collection.update_many.call_count == 2
    query, update = collection.update_many.call_args_list[0].args
    assert query["segment_name"] == "companies-1"
    assert query["active"] is True
    assert len(query["company_id"]["$in"]) == IN_CHUNK_SIZE
    assert update == {"$set": {"active": False}}


def test_next_batch_number_uses_atomic_counter():
    counters = MagicMock()
    counters.find_one_and_update.return_value = {"_id": "batch_number", "value": 7}

    assert MongoBatchRepository(MagicMock(), counters).next_batch_number() == 7
    args, kwargs = counters.find_one_and_update.call_args
    assert args == ({"_id": "batch_number"}, {"$inc": {"value": 1}})
    assert kwargs == {"upsert": True, "return_document": ReturnDocument.AFTER}


def test_segment_counter_updates_require_existing_segment():
    collection = MagicMock()
    collection.find_one_and_update.return_value = None

    with pytest.raises(LookupError):
        MongoSegmentRepository(collection).record_insertions("companies-9", 1)


def test_record_insertions_returns_updated_segment():
    collection = MagicMock()
    collection.find_one_and_update.return_value = {
        "name": "companies-1",
        "family": "companies",
        "ordinal": 1,
        "capacity": 2,
        "current_count": 2,
        "is_full": True,
        "needs_rebuild": True,
    }

    segment = MongoSegmentRepository(collection).record_insertions("companies-1", 2)

    assert segment.is_full
    assert segment.available == 0
    assert collection.find_one_and_update.call_args.kwargs == {
        "return_document": ReturnDocument.AFTER
    }


def test_config_merges_stored_capacities_over_defaults():
    collection = MagicMock()
    collection.find_one.return_value = {"capacities": {"companies": 500}, "total_urls": 3}
    repository = MongoConfigRepository(collection)

    config = repository.get()

    assert config.capacity_for(SegmentFamily.COMPANIES) == 500
    assert config.capacity_for(SegmentFamily.LOCATIONS) == 50_000
    assert config.total_urls == 3

    repository.set_capacity(SegmentFamily.LOCATIONS, 20)
    collection.update_one.assert_called_with(
        {"_id": "global"}, {"$set": {"capacities.locations": 20}}, upsert=True
    )
    with pytest.raises(ValidationError):
        repository.set_capacity(SegmentFamily.LOCATIONS, 0)
