"""Helpers converting between canonical slugs and absolute URLs."""
from __future__ import annotations


def build_url(base_url: str, slug: str) -> str:
    """Join ``slug`` to ``base_url``; an empty slug is the home page."""

    base = base_url.rstrip("/")
    path = slug.strip("/")
    return f"{base}/{path}" if path else f"{base}/"


def slug_from_url(url: str, base_url: str) -> str:
    """Strip ``base_url`` from ``url`` returning the path without slashes."""

    base = base_url.rstrip("/")
    value = url.strip()
    if value.startswith(base):
        value = value[len(base):]
    elif "://" in value:
        value = value.split("://", 1)[1]
        value = value.split("/", 1)[1] if "/" in value else ""
    return value.split("?", 1)[0].split("#", 1)[0].strip("/")


__all__ = ["build_url", "slug_from_url"]
