"""Sitemapper - segmented sitemap inventory and generator."""
from .application import IngestionService, Regenerator, StatsService, SyncService
from .domain import Entry, Segment, SegmentFamily
from .services.sitemap import build_sitemap_container

__all__ = [
    "Entry",
    "IngestionService",
    "Regenerator",
    "Segment",
    "SegmentFamily",
    "StatsService",
    "SyncService",
    "build_sitemap_container",
]
