"""Persistence contract for the batch ledger."""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from sitemapper.domain.entities import Batch, BatchStatus


class BatchRepository(ABC):
    """Defines the append-only ledger of ingestion batches."""

    @abstractmethod
    def next_batch_number(self) -> int:
        """Reserve the next monotonically increasing batch number."""

    @abstractmethod
    def add(self, batch: Batch) -> None:
        """Record a new batch."""

    @abstractmethod
    def finalize(
        self,
        batch_number: int,
        *,
        status: BatchStatus,
        added_count: int,
        skipped_count: int,
        failed_count: int,
        completed_at: datetime,
        notes: str | None = None,
    ) -> None:
        """Close a PROCESSING batch with its final status and counters."""

    @abstractmethod
    def get(self, batch_number: int) -> Optional[Batch]:
        """Return a batch by number."""

    @abstractmethod
    def list_recent(self, *, limit: int, offset: int = 0) -> List[Batch]:
        """List batches newest first."""

    @abstractmethod
    def count(self) -> int:
        """Count recorded batches."""
