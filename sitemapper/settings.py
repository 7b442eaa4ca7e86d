"""Shared settings loaded from environment variables."""
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

from sitemapper.domain import SegmentFamily, default_capacities
from sitemapper.domain.entities.global_config import (
    DEFAULT_CAPACITY,
    HIGH_VOLUME_CAPACITY,
)

load_dotenv()

_DEFAULT_BASE_URL = "https://example.com"
_DEFAULT_OUTPUT_DIR = "./public"
_DEFAULT_API_BIND_HOST = "0.0.0.0"
_DEFAULT_API_PORT = 8000
_DEFAULT_LOG_LEVEL = "INFO"


@lru_cache(maxsize=None)
def get_base_url() -> str:
    """Return the public site URL every entry and artifact location is built on."""

    return os.getenv("SITEMAP_BASE_URL", _DEFAULT_BASE_URL).rstrip("/")


@lru_cache(maxsize=None)
def get_output_dir() -> Path:
    """Return the directory receiving the generated artifacts."""

    return Path(os.getenv("SITEMAP_OUTPUT_DIR", _DEFAULT_OUTPUT_DIR))


@lru_cache(maxsize=None)
def get_default_capacities() -> Dict[SegmentFamily, int]:
    """Return the capacity of newly created segments per family."""

    return default_capacities(
        high_volume=int(os.getenv("SITEMAP_HIGH_VOLUME_CAPACITY", HIGH_VOLUME_CAPACITY)),
        default=int(os.getenv("SITEMAP_DEFAULT_CAPACITY", DEFAULT_CAPACITY)),
    )


@lru_cache(maxsize=None)
def get_api_port() -> int:
    return int(os.getenv("SITEMAP_API_PORT", os.getenv("PORT", _DEFAULT_API_PORT)))


@lru_cache(maxsize=None)
def get_api_bind_host() -> str:
    return os.getenv("SITEMAP_API_BIND_HOST", _DEFAULT_API_BIND_HOST)


@lru_cache(maxsize=None)
def get_log_level() -> str:
    return os.getenv("SITEMAP_LOG_LEVEL", _DEFAULT_LOG_LEVEL).upper()


@lru_cache(maxsize=None)
def get_catalog_url() -> Optional[str]:
    """Return the URL of an HTTP catalog service, when one is configured."""

    return os.getenv("SITEMAP_CATALOG_URL") or None


__all__ = [
    "get_api_bind_host",
    "get_api_port",
    "get_base_url",
    "get_catalog_url",
    "get_default_capacities",
    "get_log_level",
    "get_output_dir",
]
