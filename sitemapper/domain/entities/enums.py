"""Enumerations shared by the sitemap entities."""
from __future__ import annotations

from enum import Enum


class EntryType(str, Enum):
    """Kind of page a sitemap entry points to."""

    STATIC = "STATIC"
    COMPANY = "COMPANY"
    COUNTRY = "COUNTRY"
    CITY = "CITY"
    SUBAREA = "SUBAREA"
    CATEGORY = "CATEGORY"
    CATEGORY_SUB = "CATEGORY_SUB"
    COUNTRY_CATEGORY = "COUNTRY_CATEGORY"
    COUNTRY_CATEGORY_SUB = "COUNTRY_CATEGORY_SUB"
    CITY_CATEGORY = "CITY_CATEGORY"
    CITY_CATEGORY_SUB = "CITY_CATEGORY_SUB"
    SUBAREA_CATEGORY = "SUBAREA_CATEGORY"
    SUBAREA_CATEGORY_SUB = "SUBAREA_CATEGORY_SUB"

    @property
    def is_composite(self) -> bool:
        """Whether the page combines a location with a category."""

        return "_CATEGORY" in self.value


class ChangeFrequency(str, Enum):
    """Values accepted by the ``<changefreq>`` element."""

    ALWAYS = "always"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    NEVER = "never"


class SegmentFamily(str, Enum):
    """Content family held by a group of segments."""

    STATIC = "static"
    LOCATIONS = "locations"
    CATEGORIES_SIMPLE = "categories-simple"
    CATEGORIES_MIXED = "categories-mixed"
    COMPANIES = "companies"

    @property
    def is_numbered(self) -> bool:
        """High-volume families always carry the ordinal in the segment name."""

        return self is SegmentFamily.COMPANIES


class AddMethod(str, Enum):
    """How an entry (or a batch of entries) entered the inventory."""

    MANUAL = "MANUAL"
    TOP_RATED = "TOP_RATED"
    NEWEST_FIRST = "NEWEST_FIRST"
    OLDEST_FIRST = "OLDEST_FIRST"
    BY_ID_RANGE = "BY_ID_RANGE"
    BY_CATEGORY = "BY_CATEGORY"
    BY_CITY = "BY_CITY"
    RANDOM = "RANDOM"
    AUTO_GENERATED = "AUTO_GENERATED"
    IMPORTED = "IMPORTED"


class BatchStatus(str, Enum):
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class RebuildMode(str, Enum):
    FULL = "full"
    INCREMENTAL = "incremental"


class EntityKind(str, Enum):
    """Domain entity kinds exposed by the catalog."""

    COMPANY = "company"
    COUNTRY = "country"
    CITY = "city"
    SUB_AREA = "sub_area"
    CATEGORY = "category"
    SUB_CATEGORY = "sub_category"


__all__ = [
    "AddMethod",
    "BatchStatus",
    "ChangeFrequency",
    "EntityKind",
    "EntryType",
    "RebuildMode",
    "SegmentFamily",
]
