"""Persistence contract for sitemap entries."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sitemapper.domain.entities import EntityKind, Entry, EntryType


@dataclass(frozen=True)
class EntryQuery:
    """Filters applied when paging through active entries."""

    entry_type: Optional[EntryType] = None
    segment_name: Optional[str] = None
    search: Optional[str] = None


class EntryRepository(ABC):
    """Defines reads and writes over the flat URL inventory."""

    @abstractmethod
    def insert_many(self, entries: Sequence[Entry]) -> int:
        """Insert entries skipping any whose ``url`` already exists.

        Returns:
            How many rows were actually inserted.
        """

    @abstractmethod
    def get_by_url(self, url: str) -> Optional[Entry]:
        """Return the entry stored under ``url``, active or not."""

    @abstractmethod
    def replace(self, entry: Entry) -> None:
        """Overwrite the entry stored under ``entry.url``."""

    @abstractmethod
    def existing_urls(self, urls: Iterable[str], *, active_only: bool = False) -> Set[str]:
        """Return which of ``urls`` are already stored."""

    @abstractmethod
    def active_reference_ids(self, kind: EntityKind, ids: Iterable[str]) -> Set[str]:
        """Return which of ``ids`` already back an active entry of ``kind``."""

    @abstractmethod
    def deactivate_url(self, url: str) -> Optional[str]:
        """Deactivate the active entry for ``url``; return its segment name."""

    @abstractmethod
    def unlisted_references(
        self, kind: EntityKind, active_ids: Set[str]
    ) -> Dict[str, Set[str]]:
        """Find ``kind`` ids of active entries that are not in ``active_ids``.

        Returns:
            The unlisted reference ids grouped by segment name.
        """

    @abstractmethod
    def deactivate_references(
        self, kind: EntityKind, segment_name: str, ids: Iterable[str]
    ) -> int:
        """Deactivate active entries of one segment referencing any of ``ids``.

        Returns:
            How many entries were deactivated.
        """

    @abstractmethod
    def list_active_in_segment(self, segment_name: str) -> List[Entry]:
        """List active entries of a segment ordered by position."""

    @abstractmethod
    def count_in_segment(self, segment_name: str) -> int:
        """Count every entry assigned to the segment, soft-deactivated included."""

    @abstractmethod
    def count_active(self, entry_type: EntryType | None = None) -> int:
        """Count active entries, optionally of a single type."""

    @abstractmethod
    def search(
        self, query: EntryQuery, *, offset: int, limit: int
    ) -> Tuple[List[Entry], int]:
        """Page through active entries newest first; returns page and total."""
