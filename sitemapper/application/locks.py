"""Process-local locks serializing writers per family and per segment."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from sitemapper.domain import SegmentFamily


class LockRegistry:
    """Hands out one re-entrant lock per family and one per segment.

    The family lock covers the read-capacity, plan and write sequence of an
    ingestion so that concurrent batches cannot both claim the same free
    slots. The segment lock keeps a rebuild from reading a segment while an
    ingestion slice is being written into it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._family_locks: Dict[str, threading.RLock] = {}
        self._segment_locks: Dict[str, threading.RLock] = {}

    def _lock_for(self, registry: Dict[str, threading.RLock], key: str) -> threading.RLock:
        with self._guard:
            lock = registry.get(key)
            if lock is None:
                lock = threading.RLock()
                registry[key] = lock
            return lock

    @contextmanager
    def family(self, family: SegmentFamily) -> Iterator[None]:
        with self._lock_for(self._family_locks, family.value):
            yield

    @contextmanager
    def segment(self, name: str) -> Iterator[None]:
        with self._lock_for(self._segment_locks, name):
            yield


__all__ = ["LockRegistry"]
