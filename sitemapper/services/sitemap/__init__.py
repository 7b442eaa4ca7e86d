"""Sitemap service dependency container."""

from .container import SitemapContainer, build_sitemap_container

__all__ = ["SitemapContainer", "build_sitemap_container"]
