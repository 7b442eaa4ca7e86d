"""Output port that stores serialized artifacts."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SinkWriteResult:
    name: str
    size_bytes: int
    compressed_size_bytes: Optional[int] = None


class FileSink(ABC):
    """Writes a named blob together with its compressed companion."""

    @abstractmethod
    def write(self, name: str, data: bytes) -> SinkWriteResult:
        """Store ``data`` under ``name`` plus a ``.gz`` companion.

        Raises:
            OSError: When the artifact cannot be stored.
        """

    @abstractmethod
    def read(self, name: str) -> Optional[bytes]:
        """Return the stored artifact or ``None`` when it does not exist."""
