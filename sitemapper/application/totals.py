"""Recomputation of the cached inventory totals."""
from __future__ import annotations

from sitemapper.domain import ConfigRepository, EntryRepository, SegmentRepository


def refresh_totals(
    entries: EntryRepository,
    segments: SegmentRepository,
    config: ConfigRepository,
) -> tuple[int, int]:
    """Derive totals from the stores and cache them on the global config."""

    total_urls = entries.count_active()
    total_segments = len(segments.list())
    config.save_totals(total_urls=total_urls, total_segments=total_segments)
    return total_urls, total_segments


__all__ = ["refresh_totals"]
