"""Dependency container for the sitemap services."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from sitemapper.application import (
    IngestionService,
    LockRegistry,
    Regenerator,
    SegmentDistributor,
    StatsService,
    SyncService,
)
from sitemapper.domain import (
    BatchRepository,
    ConfigRepository,
    DomainCatalog,
    EntryRepository,
    FileSink,
    SegmentRepository,
)
from sitemapper.infrastructure import (
    HttpDomainCatalog,
    InMemoryBatchRepository,
    InMemoryConfigRepository,
    InMemoryDomainCatalog,
    InMemoryEntryRepository,
    InMemorySegmentRepository,
    LocalFileSink,
    MongoBatchRepository,
    MongoClientFactory,
    MongoConfigRepository,
    MongoDomainCatalog,
    MongoEntryRepository,
    MongoSegmentRepository,
)
from sitemapper.infrastructure.repositories import (
    BATCHES_COLLECTION,
    CONFIG_COLLECTION,
    COUNTERS_COLLECTION,
    ENTRIES_COLLECTION,
    SEGMENTS_COLLECTION,
)
from sitemapper.settings import (
    get_base_url,
    get_catalog_url,
    get_default_capacities,
    get_output_dir,
)

STORES = ("mongo", "memory")


@dataclass
class SitemapContainer:
    """Container exposing the sitemap service dependencies."""

    entries: EntryRepository
    segments: SegmentRepository
    batches: BatchRepository
    config: ConfigRepository
    catalog: DomainCatalog
    sink: FileSink
    locks: LockRegistry
    ingestion_service: IngestionService
    sync_service: SyncService
    regenerator: Regenerator
    stats_service: StatsService
    factory: MongoClientFactory | None = None

    def close(self) -> None:
        closer = getattr(self.catalog, "close", None)
        if callable(closer):
            closer()
        if self.factory is not None:
            self.factory.close()


def build_sitemap_container(
    *,
    store: str = "mongo",
    factory: MongoClientFactory | None = None,
    catalog: DomainCatalog | None = None,
    sink: FileSink | None = None,
    base_url: str | None = None,
    output_dir: Path | str | None = None,
) -> SitemapContainer:
    """Build the sitemap service container.

    Args:
        store: ``mongo`` for the persistent store, ``memory`` for a
            throwaway one.
        factory: Mongo client factory; built from the environment when
            omitted.
        catalog: Domain catalog; defaults to the HTTP catalog when
            ``SITEMAP_CATALOG_URL`` is set, else to the site's Mongo
            collections (or an empty in-memory catalog for ``memory``).
        sink: Artifact sink; defaults to a local directory.
        base_url: Public site URL; ``SITEMAP_BASE_URL`` when omitted.
        output_dir: Directory of the default sink; ``SITEMAP_OUTPUT_DIR``
            when omitted.
    """

    if store not in STORES:
        raise ValueError(f"Unknown store '{store}', expected one of {STORES}")

    capacities = get_default_capacities()
    base_url = (base_url or get_base_url()).rstrip("/")
    database = None
    if store == "mongo":
        factory = factory or MongoClientFactory()
        database = factory.prepare_database()
        entries: EntryRepository = MongoEntryRepository(database[ENTRIES_COLLECTION])
        segments: SegmentRepository = MongoSegmentRepository(database[SEGMENTS_COLLECTION])
        batches: BatchRepository = MongoBatchRepository(
            database[BATCHES_COLLECTION], database[COUNTERS_COLLECTION]
        )
        config: ConfigRepository = MongoConfigRepository(
            database[CONFIG_COLLECTION], capacities
        )
    else:
        factory = None
        entries = InMemoryEntryRepository()
        segments = InMemorySegmentRepository()
        batches = InMemoryBatchRepository()
        config = InMemoryConfigRepository(capacities)

    if catalog is None:
        catalog_url = get_catalog_url()
        if catalog_url:
            catalog = HttpDomainCatalog(catalog_url, timeout=30.0)
        elif database is not None:
            catalog = MongoDomainCatalog(database)
        else:
            catalog = InMemoryDomainCatalog()

    sink = sink or LocalFileSink(output_dir or get_output_dir())
    locks = LockRegistry()
    distributor = SegmentDistributor(segments, config)

    return SitemapContainer(
        entries=entries,
        segments=segments,
        batches=batches,
        config=config,
        catalog=catalog,
        sink=sink,
        locks=locks,
        ingestion_service=IngestionService(
            entries,
            segments,
            batches,
            config,
            catalog,
            base_url=base_url,
            distributor=distributor,
            locks=locks,
        ),
        sync_service=SyncService(
            entries,
            segments,
            config,
            catalog,
            base_url=base_url,
            distributor=distributor,
            locks=locks,
        ),
        regenerator=Regenerator(
            entries,
            segments,
            config,
            catalog,
            sink,
            base_url=base_url,
            locks=locks,
        ),
        stats_service=StatsService(entries, segments, batches, config),
        factory=factory,
    )


__all__ = ["STORES", "SitemapContainer", "build_sitemap_container"]
