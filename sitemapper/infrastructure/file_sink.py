"""File sink writing artifacts and their gzip companions to a directory."""
from __future__ import annotations

import gzip
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from sitemapper.domain import FileSink, SinkWriteResult

GZIP_SUFFIX = ".gz"


class LocalFileSink(FileSink):
    """Stores artifacts under ``root``; each write replaces the file atomically."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, name: str) -> Path:
        if not name or Path(name).name != name:
            raise ValueError(f"Invalid artifact name: {name!r}")
        return self._root / name

    def _replace(self, path: Path, data: bytes) -> None:
        handle, temporary = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        try:
            with os.fdopen(handle, "wb") as stream:
                stream.write(data)
            os.replace(temporary, path)
        except BaseException:
            Path(temporary).unlink(missing_ok=True)
            raise

    def write(self, name: str, data: bytes) -> SinkWriteResult:
        path = self._path(name)
        self._root.mkdir(parents=True, exist_ok=True)
        compressed = gzip.compress(data, mtime=0)
        self._replace(path, data)
        self._replace(path.with_name(path.name + GZIP_SUFFIX), compressed)
        return SinkWriteResult(
            name=name, size_bytes=len(data), compressed_size_bytes=len(compressed)
        )

    def read(self, name: str) -> Optional[bytes]:
        path = self._path(name)
        if not path.is_file():
            return None
        return path.read_bytes()

    def exists(self, name: str) -> bool:
        return self._path(name).is_file()

    def delete(self, name: str) -> bool:
        """Remove an artifact and its companion; returns whether it existed."""

        path = self._path(name)
        existed = path.is_file()
        path.unlink(missing_ok=True)
        path.with_name(path.name + GZIP_SUFFIX).unlink(missing_ok=True)
        return existed

    def list_artifacts(self) -> List[str]:
        if not self._root.is_dir():
            return []
        return sorted(
            path.name
            for path in self._root.iterdir()
            if path.is_file() and path.suffix == ".xml"
        )

    def backup(self, name: str) -> Optional[Path]:
        """Copy an artifact aside as ``<name>.backup-<timestamp>``."""

        path = self._path(name)
        if not path.is_file():
            return None
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        target = path.with_name(f"{path.name}.backup-{stamp}")
        shutil.copy2(path, target)
        return target


__all__ = ["GZIP_SUFFIX", "LocalFileSink"]
