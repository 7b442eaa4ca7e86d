"""Errors raised by the sitemap engine."""
from __future__ import annotations


class SitemapError(Exception):
    """Base class for errors raised by the engine."""


class ValidationError(SitemapError, ValueError):
    """Input rejected before any state is touched."""


class EntityNotFoundError(SitemapError, ValueError):
    """Domain entity is absent from the catalog or inactive."""


class IngestionFailedError(SitemapError, RuntimeError):
    """Every slice of a batch failed; the batch was recorded as FAILED."""

    def __init__(self, batch_number: int, message: str) -> None:
        super().__init__(message)
        self.batch_number = batch_number


__all__ = [
    "EntityNotFoundError",
    "IngestionFailedError",
    "SitemapError",
    "ValidationError",
]
