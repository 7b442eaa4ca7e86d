from __future__ import annotations

import gzip

import pytest

from sitemapper.infrastructure import LocalFileSink


def test_write_stores_artifact_and_gzip_companion(tmp_path):
    sink = LocalFileSink(tmp_path / "nested" / "public")

    result = sink.write("sitemap-static.xml", b"<urlset/>")

    path = tmp_path / "nested" / "public" / "sitemap-static.xml"
    assert path.read_bytes() == b"<urlset/>"
    assert gzip.decompress(path.with_name("sitemap-static.xml.gz").read_bytes()) == b"<urlset/>"
    assert result.size_bytes == 9
    assert result.compressed_size_bytes == len(
        path.with_name("sitemap-static.xml.gz").read_bytes()
    )


def test_write_replaces_previous_content_without_leftovers(tmp_path):
    sink = LocalFileSink(tmp_path)
    sink.write("sitemap.xml", b"old")

    sink.write("sitemap.xml", b"new")

    assert sink.read("sitemap.xml") == b"new"
    assert sorted(path.name for path in tmp_path.iterdir()) == ["sitemap.xml", "sitemap.xml.gz"]


def test_read_exists_and_delete(tmp_path):
    sink = LocalFileSink(tmp_path)
    assert sink.read("sitemap.xml") is None
    assert sink.list_artifacts() == []

    sink.write("sitemap.xml", b"<sitemapindex/>")

    assert sink.exists("sitemap.xml")
    assert sink.list_artifacts() == ["sitemap.xml"]
    assert sink.delete("sitemap.xml")
    assert not (tmp_path / "sitemap.xml.gz").exists()
    assert not sink.delete("sitemap.xml")


def test_backup_copies_artifact_aside(tmp_path):
    sink = LocalFileSink(tmp_path)
    assert sink.backup("sitemap.xml") is None
    sink.write("sitemap.xml", b"<sitemapindex/>")

    target = sink.backup("sitemap.xml")

    assert target.name.startswith("sitemap.xml.backup-")
    assert target.read_bytes() == b"<sitemapindex/>"
    assert sink.list_artifacts() == ["sitemap.xml"]


@pytest.mark.parametrize("name", ["", "../sitemap.xml", "sub/sitemap.xml"])
def test_rejects_names_with_paths(tmp_path, name):
    with pytest.raises(ValueError):
        LocalFileSink(tmp_path).write(name, b"x")
