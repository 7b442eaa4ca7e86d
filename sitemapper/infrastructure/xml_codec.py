"""Rendering and parsing of sitemaps.org 0.9 documents."""
from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"
_NS = {"sm": SITEMAP_NAMESPACE}


@dataclass(frozen=True)
class UrlRecord:
    """One ``<url>`` element of a segment artifact."""

    loc: str
    lastmod: Optional[date] = None
    change_frequency: Optional[str] = None
    priority: Optional[float] = None


@dataclass(frozen=True)
class IndexRecord:
    """One ``<sitemap>`` element of the root index."""

    loc: str
    lastmod: Optional[date] = None


def _as_date(value: date | datetime | None) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


def format_priority(priority: float) -> str:
    return f"{priority:.1f}"


def _serialize(root: ET.Element) -> bytes:
    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def render_urlset(records: Iterable[UrlRecord]) -> bytes:
    """Render ``records`` as a ``<urlset>`` document, keeping their order."""

    root = ET.Element("urlset", xmlns=SITEMAP_NAMESPACE)
    for record in records:
        node = ET.SubElement(root, "url")
        ET.SubElement(node, "loc").text = record.loc
        lastmod = _as_date(record.lastmod)
        if lastmod is not None:
            ET.SubElement(node, "lastmod").text = lastmod.isoformat()
        if record.change_frequency:
            ET.SubElement(node, "changefreq").text = record.change_frequency
        if record.priority is not None:
            ET.SubElement(node, "priority").text = format_priority(record.priority)
    return _serialize(root)


def render_index(records: Iterable[IndexRecord]) -> bytes:
    """Render ``records`` as a ``<sitemapindex>`` document."""

    root = ET.Element("sitemapindex", xmlns=SITEMAP_NAMESPACE)
    for record in records:
        node = ET.SubElement(root, "sitemap")
        ET.SubElement(node, "loc").text = record.loc
        lastmod = _as_date(record.lastmod)
        if lastmod is not None:
            ET.SubElement(node, "lastmod").text = lastmod.isoformat()
    return _serialize(root)


def _parse_date(text: str | None) -> Optional[date]:
    if not text:
        return None
    value = text.strip()
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _findtext(node: ET.Element, tag: str) -> Optional[str]:
    # Documents without the namespace are accepted too.
    text = node.findtext(f"sm:{tag}", None, _NS)
    if text is None:
        text = node.findtext(tag)
    return text.strip() if text is not None else None


def _children(root: ET.Element, tag: str) -> List[ET.Element]:
    return root.findall(f"sm:{tag}", _NS) or root.findall(tag)


def parse_urlset(data: bytes | str) -> List[UrlRecord]:
    """Parse a ``<urlset>`` document into records, in document order.

    Raises:
        ValueError: When ``data`` is not well-formed XML.
    """

    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise ValueError(f"Invalid sitemap document: {exc}") from exc

    records: List[UrlRecord] = []
    for node in _children(root, "url"):
        loc = _findtext(node, "loc")
        if not loc:
            continue
        priority_text = _findtext(node, "priority")
        try:
            priority = float(priority_text) if priority_text else None
        except ValueError:
            priority = None
        records.append(
            UrlRecord(
                loc=loc,
                lastmod=_parse_date(_findtext(node, "lastmod")),
                change_frequency=_findtext(node, "changefreq") or None,
                priority=priority,
            )
        )
    return records


def parse_index(data: bytes | str) -> List[IndexRecord]:
    """Parse a ``<sitemapindex>`` document into records.

    Raises:
        ValueError: When ``data`` is not well-formed XML.
    """

    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise ValueError(f"Invalid sitemap index: {exc}") from exc

    records: List[IndexRecord] = []
    for node in _children(root, "sitemap"):
        loc = _findtext(node, "loc")
        if loc:
            records.append(
                IndexRecord(loc=loc, lastmod=_parse_date(_findtext(node, "lastmod")))
            )
    return records


def format_bytes(size: int) -> str:
    """Render ``size`` as a human readable amount (``1.5 KB``)."""

    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    if index == 0:
        return f"{int(value)} Bytes"
    return f"{round(value, 2):g} {units[index]}"


__all__ = [
    "IndexRecord",
    "SITEMAP_NAMESPACE",
    "UrlRecord",
    "format_bytes",
    "format_priority",
    "parse_index",
    "parse_urlset",
    "render_index",
    "render_urlset",
]
