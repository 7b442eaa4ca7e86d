from __future__ import annotations

import pytest

from factories import BASE_URL
from sitemapper.application import classify_url
from sitemapper.application.urls import build_url, slug_from_url
from sitemapper.domain import ChangeFrequency, EntryType, SegmentFamily


@pytest.mark.parametrize(
    ("path", "entry_type", "family"),
    [
        ("", EntryType.STATIC, SegmentFamily.STATIC),
        ("about", EntryType.STATIC, SegmentFamily.STATIC),
        ("acme-trading", EntryType.COMPANY, SegmentFamily.COMPANIES),
        ("category/hotels", EntryType.CATEGORY, SegmentFamily.CATEGORIES_SIMPLE),
        ("category/hotels/boutique", EntryType.CATEGORY_SUB, SegmentFamily.CATEGORIES_SIMPLE),
        ("country/sy", EntryType.COUNTRY, SegmentFamily.LOCATIONS),
        ("country/sy/city/damascus", EntryType.CITY, SegmentFamily.LOCATIONS),
        ("country/sy/city/damascus/sub-area/mezzeh", EntryType.SUBAREA, SegmentFamily.LOCATIONS),
        ("country/sy/category/hotels", EntryType.COUNTRY_CATEGORY, SegmentFamily.CATEGORIES_MIXED),
        (
            "country/sy/category/hotels/boutique",
            EntryType.COUNTRY_CATEGORY_SUB,
            SegmentFamily.CATEGORIES_MIXED,
        ),
        (
            "country/sy/city/damascus/category/hotels",
            EntryType.CITY_CATEGORY,
            SegmentFamily.CATEGORIES_MIXED,
        ),
        (
            "country/sy/city/damascus/category/hotels/boutique",
            EntryType.CITY_CATEGORY_SUB,
            SegmentFamily.CATEGORIES_MIXED,
        ),
        (
            "country/sy/city/damascus/sub-area/mezzeh/category/hotels",
            EntryType.SUBAREA_CATEGORY,
            SegmentFamily.CATEGORIES_MIXED,
        ),
        (
            "country/sy/city/damascus/sub-area/mezzeh/category/hotels/boutique",
            EntryType.SUBAREA_CATEGORY_SUB,
            SegmentFamily.CATEGORIES_MIXED,
        ),
    ],
)
def test_classify_url_by_path_shape(path, entry_type, family):
    classification = classify_url(build_url(BASE_URL, path), BASE_URL)

    assert classification.entry_type is entry_type
    assert classification.family is family
    assert classification.canonical_slug == path


def test_classification_carries_type_defaults_and_slugs():
    home = classify_url(f"{BASE_URL}/", BASE_URL)
    mixed = classify_url(f"{BASE_URL}/country/sy/city/homs/category/food/", BASE_URL)

    assert (home.priority, home.change_frequency) == (1.0, ChangeFrequency.DAILY)
    assert mixed.priority == 0.8
    assert mixed.path_slugs == {"country": "sy", "city": "homs", "category": "food"}


def test_unrecognized_country_shape_falls_back_to_company():
    classification = classify_url(f"{BASE_URL}/country/sy/region/north", BASE_URL)

    assert classification.entry_type is EntryType.COMPANY


def test_slug_helpers():
    assert build_url("https://example.com/", "/a/b/") == "https://example.com/a/b"
    assert build_url("https://example.com", "") == "https://example.com/"
    assert slug_from_url("https://example.com/a/b/?x=1#top", "https://example.com") == "a/b"
    assert slug_from_url("https://mirror.example.org/a", "https://example.com") == "a"
