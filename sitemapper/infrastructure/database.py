"""Connection to the MongoDB database holding the sitemap inventory.

Entries, segments, batches and the global config live in one database; the
domain catalog collections (``companies``, ``cities``...) are read from the
same database unless an HTTP catalog is configured.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from pymongo import MongoClient

from .repositories.indexes import ensure_sitemap_indexes

DEFAULT_MONGO_URI = "mongodb://localhost:27017"
DEFAULT_MONGO_DATABASE = "sitemapper"
DEFAULT_TIMEOUT_MS = 5000


@dataclass
class MongoSettings:
    uri: str = DEFAULT_MONGO_URI
    database: str = DEFAULT_MONGO_DATABASE
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    @classmethod
    def from_env(cls) -> "MongoSettings":
        timeout = os.getenv("MONGO_TIMEOUT_MS", "").strip()
        try:
            timeout_ms = int(timeout) if timeout else DEFAULT_TIMEOUT_MS
        except ValueError as exc:
            raise RuntimeError(f"MONGO_TIMEOUT_MS must be an integer, got {timeout!r}") from exc
        return cls(
            uri=os.getenv("MONGO_URI") or DEFAULT_MONGO_URI,
            database=os.getenv("MONGO_DATABASE") or DEFAULT_MONGO_DATABASE,
            timeout_ms=timeout_ms,
        )


class MongoClientFactory:
    """Owns the single client of a sitemap container.

    Datetimes come back timezone aware so segment and entry timestamps
    compare with the UTC values the services produce.
    """

    def __init__(self, settings: MongoSettings | None = None) -> None:
        self._settings = settings or MongoSettings.from_env()
        self._client: MongoClient | None = None
        self._indexed = False

    @property
    def settings(self) -> MongoSettings:
        return self._settings

    def create_client(self) -> MongoClient:
        if self._client is None:
            self._client = MongoClient(
                self._settings.uri,
                tz_aware=True,
                serverSelectionTimeoutMS=self._settings.timeout_ms,
                appname="sitemapper",
            )
        return self._client

    def get_database(self) -> Any:
        return self.create_client()[self._settings.database]

    def prepare_database(self) -> Any:
        """Return the database with the sitemap indexes in place."""

        database = self.get_database()
        if not self._indexed:
            ensure_sitemap_indexes(database)
            self._indexed = True
        return database

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._indexed = False
