from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest

from factories import BASE_URL
from sitemapper import cli
from sitemapper.domain import EntityKind, EntryType, IngestionFailedError, SegmentFamily


@pytest.fixture(autouse=True)
def _noop_load_dotenv(monkeypatch):
    monkeypatch.setattr(cli, "load_dotenv", lambda: None)


@pytest.fixture
def run(monkeypatch, container):
    calls: list[dict] = []

    def _build(**kwargs):
        calls.append(kwargs)
        return container

    monkeypatch.setattr(cli, "build_sitemap_container", _build)

    def _run(*argv: str) -> list[dict]:
        monkeypatch.setattr(cli.sys, "argv", ["sitemapper", *argv])
        cli.main()
        return calls

    return _run


def test_parse_args_defaults():
    args = cli.parse_args(["rebuild"])

    assert args.store == "mongo"
    assert args.mode == "incremental"
    assert args.workers == 1


def test_ingest_reads_ids_file_and_rebuilds(run, container, sink, tmp_path: Path, capsys):
    ids_file = tmp_path / "ids.json"
    ids_file.write_text(json.dumps(["c3", "c4"]), encoding="utf-8")

    calls = run(
        "ingest",
        "companies",
        "c1",
        "c2",
        "--ids-file",
        str(ids_file),
        "--initiator",
        "ops",
        "--store",
        "memory",
        "--base-url",
        BASE_URL,
    )

    out = capsys.readouterr().out
    assert "4 added" in out
    assert "Rebuilt 1 segment(s)." in out
    assert calls == [{"store": "memory", "base_url": BASE_URL, "output_dir": None}]
    assert container.batches.get(1).initiator_name == "ops"
    assert sink.exists("sitemap-companies-1.xml")


def test_ingest_without_rebuild(run, container, tmp_path: Path):
    ids_file = tmp_path / "ids.txt"
    ids_file.write_text("c1\n\nc2\n", encoding="utf-8")

    run("ingest", "companies", "--ids-file", str(ids_file), "--no-rebuild")

    assert container.entries.count_active() == 2
    assert container.segments.get("companies-1").needs_rebuild


def test_validation_errors_exit_with_status_1(run, capsys):
    with pytest.raises(SystemExit) as excinfo:
        run("ingest", "companies")

    assert excinfo.value.code == 1
    assert "candidate_ids must not be empty" in capsys.readouterr().out


def test_failed_batch_exits_with_status_2(monkeypatch, capsys):
    def _fail(*_args, **_kwargs):
        raise IngestionFailedError(3, "Batch 3 failed for every segment: companies-1")

    closed: list[bool] = []
    fake = SimpleNamespace(
        ingestion_service=SimpleNamespace(ingest=_fail),
        close=lambda: closed.append(True),
    )
    monkeypatch.setattr(cli, "build_sitemap_container", lambda **_kwargs: fake)
    monkeypatch.setattr(cli.sys, "argv", ["sitemapper", "ingest", "companies", "c1"])

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 2
    assert "Batch 3 failed" in capsys.readouterr().out
    assert closed == [True]


def test_upsert_with_related_ids(run, container, capsys):
    run("upsert", "CITY", "country/sy/city/homs", "--related", "city_id=city-homs")

    assert "created" in capsys.readouterr().out
    entry = container.entries.get_by_url(f"{BASE_URL}/country/sy/city/homs")
    assert entry.references.city_id == "city-homs"


def test_upsert_rejects_malformed_related_ids(run):
    with pytest.raises(SystemExit) as excinfo:
        run("upsert", "CITY", "country/sy/city/homs", "--related", "city_id")

    assert excinfo.value.code == 1


def test_branch_commands(run, container, tmp_path: Path, capsys):
    urls_file = tmp_path / "urls.json"
    urls_file.write_text(
        json.dumps(
            [
                "country/sy/city/damascus/category/hotels",
                {
                    "url": "country/sy/city/damascus/category/food",
                    "related_ids": {"category_id": "cat-food"},
                },
            ]
        ),
        encoding="utf-8",
    )

    run("preview-branches", "--urls-file", str(urls_file), "--anchor", "city:city-damascus")
    preview = json.loads(capsys.readouterr().out)
    run("generate-branches", "--urls-file", str(urls_file))
    out = capsys.readouterr().out

    assert (preview["total"], preview["new"]) == (2, 2)
    assert '"created": 2' in out
    assert container.entries.count_active() == 2
    assert container.sink.exists("sitemap-categories-mixed.xml")


def test_branch_commands_reject_malformed_anchor(run):
    with pytest.raises(SystemExit) as excinfo:
        run("preview-branches", "country/sy/category/hotels", "--anchor", "city")

    assert excinfo.value.code == 1


def test_rebuild_and_read_commands(run, container, capsys):
    container.ingestion_service.ingest(["c1", "c2"], SegmentFamily.COMPANIES)

    run("rebuild", "--mode", "full", "--workers", "2")
    assert "1 segment(s) rebuilt, 2 URL(s)" in capsys.readouterr().out

    run("stats")
    stats = json.loads(capsys.readouterr().out)
    assert stats["total_urls"] == 2
    assert stats["last_full_rebuild_at"] is not None

    run("segments")
    assert "companies-1" in capsys.readouterr().out

    run("batches")
    assert "Batches (1 total)" in capsys.readouterr().out

    run("entries", "--search", "company-2")
    assert "(1 total)" in capsys.readouterr().out


def test_segments_command_without_segments(run, capsys):
    run("segments")

    assert "No segments yet." in capsys.readouterr().out


def test_import_sitemap_and_cleanup(run, container, catalog, tmp_path: Path, capsys):
    document = tmp_path / "sitemap.xml"
    document.write_text(
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
        f"<url><loc>{BASE_URL}/about</loc></url>"
        f"<url><loc>{BASE_URL}/category/hotels</loc></url>"
        "</urlset>",
        encoding="utf-8",
    )

    run("import-sitemap", str(document))
    imported = capsys.readouterr().out
    container.sync_service.upsert_single(
        EntryType.COMPANY, "company-1", {"company_id": "c1"}
    )
    catalog.set_active(EntityKind.COMPANY, "c1", False)
    run("cleanup", "--kind", "company")
    cleaned = capsys.readouterr().out

    assert '"created": 2' in imported
    assert container.sink.exists("sitemap-static.xml")
    assert '"total": 1' in cleaned
    assert not container.entries.get_by_url(f"{BASE_URL}/company-1").active


