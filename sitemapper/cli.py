"""Command line interface to operate the sitemap engine."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Sequence

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from sitemapper.application import BranchCandidate
from sitemapper.domain import (
    AddMethod,
    ChangeFrequency,
    EntityKind,
    EntryType,
    IngestionFailedError,
    Initiator,
    RebuildMode,
    SegmentFamily,
)
from sitemapper.infrastructure.xml_codec import format_bytes
from sitemapper.services.sitemap import build_sitemap_container
from sitemapper.services.sitemap.container import STORES
from sitemapper.services.sitemap.schemas import StatsResponse
from sitemapper.settings import get_log_level


def _enum_values(enum: Any) -> List[str]:
    return [member.value for member in enum]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--store",
        choices=STORES,
        default="mongo",
        help="Inventory store (default: mongo; memory is a throwaway dry run)",
    )
    common.add_argument("--base-url", default=None, help="Public site URL")
    common.add_argument(
        "--output-dir", type=Path, default=None, help="Directory receiving the artifacts"
    )
    common.add_argument(
        "--log-level",
        default=None,
        help="Log level: DEBUG, INFO, WARNING, ERROR (default INFO)",
    )

    parser = argparse.ArgumentParser(description="Sitemapper - segmented sitemap manager")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser(
        "ingest", parents=[common], help="Add a batch of catalog entity ids to a family"
    )
    ingest.add_argument("family", choices=_enum_values(SegmentFamily))
    ingest.add_argument("ids", nargs="*", help="Entity ids, in positioning order")
    ingest.add_argument(
        "--ids-file", type=Path, help="File with one id per line or a JSON list of ids"
    )
    ingest.add_argument("--entry-type", choices=_enum_values(EntryType))
    ingest.add_argument("--priority", type=float)
    ingest.add_argument("--change-frequency", choices=_enum_values(ChangeFrequency))
    ingest.add_argument(
        "--method", choices=_enum_values(AddMethod), default=AddMethod.MANUAL.value
    )
    ingest.add_argument("--initiator", help="Name of the operator adding the batch")
    ingest.add_argument("--notes")
    ingest.add_argument(
        "--no-rebuild",
        action="store_true",
        help="Skip the incremental rebuild that normally follows the ingestion",
    )

    preview = subparsers.add_parser(
        "preview-ingest", parents=[common], help="Show how a batch would be distributed"
    )
    preview.add_argument("family", choices=_enum_values(SegmentFamily))
    preview.add_argument("count", type=int)

    upsert = subparsers.add_parser(
        "upsert", parents=[common], help="Create, refresh or deactivate a single URL"
    )
    upsert.add_argument("entry_type", choices=_enum_values(EntryType))
    upsert.add_argument("url", help="Absolute URL or path relative to the base URL")
    upsert.add_argument(
        "--related",
        action="append",
        default=[],
        metavar="FIELD=ID",
        help="Related entity id, e.g. city_id=42 (repeatable)",
    )
    upsert.add_argument(
        "--inactive", action="store_true", help="Deactivate the URL instead"
    )
    upsert.add_argument("--priority", type=float)
    upsert.add_argument("--change-frequency", choices=_enum_values(ChangeFrequency))

    branch_parsers = []
    for name, help_text in (
        ("preview-branches", "Diff enumerated branch URLs against the inventory"),
        ("generate-branches", "Add every enumerated branch URL not active yet"),
    ):
        branch = subparsers.add_parser(name, parents=[common], help=help_text)
        branch.add_argument("urls", nargs="*")
        branch.add_argument(
            "--urls-file",
            type=Path,
            help="File with one URL per line or a JSON list of URLs/candidates",
        )
        branch.add_argument(
            "--family",
            choices=_enum_values(SegmentFamily),
            default=SegmentFamily.CATEGORIES_MIXED.value,
        )
        branch.add_argument(
            "--anchor",
            metavar="KIND:ID",
            help="Entity the branch is generated for; must be active in the catalog",
        )
        branch_parsers.append(branch)

    rebuild = subparsers.add_parser(
        "rebuild", parents=[common], help="Regenerate segment artifacts and the index"
    )
    rebuild.add_argument(
        "--mode",
        choices=_enum_values(RebuildMode),
        default=RebuildMode.INCREMENTAL.value,
    )
    rebuild.add_argument("--workers", type=int, default=1)

    subparsers.add_parser("stats", parents=[common], help="Print inventory statistics")

    segments = subparsers.add_parser(
        "segments", parents=[common], help="List segments and their fill level"
    )
    segments.add_argument("--family", choices=_enum_values(SegmentFamily))

    batches = subparsers.add_parser(
        "batches", parents=[common], help="List ingestion batches, newest first"
    )
    batches.add_argument("--limit", type=int, default=20)
    batches.add_argument("--offset", type=int, default=0)

    entries = subparsers.add_parser(
        "entries", parents=[common], help="Page through active entries"
    )
    entries.add_argument("--page", type=int, default=1)
    entries.add_argument("--limit", type=int, default=50)
    entries.add_argument("--type", dest="entry_type", choices=_enum_values(EntryType))
    entries.add_argument("--segment")
    entries.add_argument("--search")

    import_sitemap = subparsers.add_parser(
        "import-sitemap",
        parents=[common],
        help="Register every URL of an existing sitemap document",
    )
    import_sitemap.add_argument("path", type=Path)
    import_sitemap.add_argument(
        "--no-rebuild", action="store_true", help="Skip the follow-up rebuild"
    )

    cleanup = subparsers.add_parser(
        "cleanup",
        parents=[common],
        help="Deactivate entries whose entity is no longer active in the catalog",
    )
    cleanup.add_argument(
        "--kind", action="append", choices=_enum_values(EntityKind), default=None
    )

    return parser.parse_args(argv)


def main() -> None:
    load_dotenv()
    args = parse_args()
    console = Console()
    level_name = args.log_level or get_log_level()
    # Logs go to stderr so JSON printed by the commands stays machine readable.
    handler = RichHandler(
        console=Console(stderr=True), markup=True, rich_tracebacks=True
    )
    logging.basicConfig(
        level=getattr(logging, str(level_name).upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    logger = logging.getLogger("sitemapper.cli")

    container = build_sitemap_container(
        store=args.store, base_url=args.base_url, output_dir=args.output_dir
    )
    try:
        _dispatch(args, container, console, logger)
    except IngestionFailedError as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(2)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1)
    finally:
        container.close()


def _dispatch(
    args: argparse.Namespace, container: Any, console: Console, logger: logging.Logger
) -> None:
    if args.command == "ingest":
        ids = list(args.ids) + (_read_list(args.ids_file) if args.ids_file else [])
        result = container.ingestion_service.ingest(
            ids,
            SegmentFamily(args.family),
            priority=args.priority,
            change_frequency=args.change_frequency,
            method=AddMethod(args.method),
            initiator=Initiator(name=args.initiator),
            entry_type=EntryType(args.entry_type) if args.entry_type else None,
            notes=args.notes,
        )
        table = Table(title=f"Batch #{result.batch_number} ({result.status.value})")
        table.add_column("Segment")
        table.add_column("Planned", justify="right")
        for name, count in result.distribution_map.items():
            table.add_row(name, str(count))
        console.print(table)
        console.print(
            f"[green]{result.added_count} added[/green], "
            f"{result.skipped_count} skipped, {result.failed_count} failed."
        )
        if result.failed_segments:
            console.print(
                "[yellow]Failed segments: "
                + ", ".join(result.failed_segments)
                + "[/yellow]"
            )
        if result.segments_written and not args.no_rebuild:
            _rebuild_after_write(container, console, logger)
    elif args.command == "preview-ingest":
        plan = container.ingestion_service.preview(args.count, SegmentFamily(args.family))
        table = Table(title=f"Distribution of {plan.requested_count} {plan.family.value} URL(s)")
        for column in ("Segment", "Add", "Current", "Result", "%", "Full", "New"):
            table.add_column(column)
        for allocation in plan.allocations:
            table.add_row(
                allocation.segment_name,
                str(allocation.allocate),
                str(allocation.current_count),
                str(allocation.resulting_count),
                f"{allocation.percentage:.2f}",
                "yes" if allocation.will_be_full else "",
                "yes" if allocation.is_new else "",
            )
        console.print(table)
    elif args.command == "upsert":
        result = container.sync_service.upsert_single(
            EntryType(args.entry_type),
            args.url,
            _parse_related(args.related),
            not args.inactive,
            priority=args.priority,
            change_frequency=args.change_frequency,
        )
        console.print(f"[green]{result.url}: {result.action}[/green]")
    elif args.command in ("preview-branches", "generate-branches"):
        candidates = _branch_candidates(args)
        anchor = _parse_anchor(args.anchor)
        family = SegmentFamily(args.family)
        if args.command == "preview-branches":
            preview = container.sync_service.preview_branches(
                family, candidates, anchor=anchor
            )
            console.print_json(data=preview.to_mapping())
        else:
            result = container.sync_service.generate_branches(
                family, candidates, anchor=anchor
            )
            console.print_json(data=result.to_mapping())
            if result.created or result.reactivated:
                _rebuild_after_write(container, console, logger)
    elif args.command == "rebuild":
        result = container.regenerator.rebuild(
            RebuildMode(args.mode), max_workers=max(args.workers, 1)
        )
        colour = "green" if result.success else "red"
        console.print(
            f"[{colour}]{len(result.segments_rebuilt)} segment(s) rebuilt, "
            f"{result.total_urls} URL(s), {format_bytes(result.total_size_bytes)} "
            f"in {result.elapsed_ms}ms.[/{colour}]"
        )
        if result.segments_failed:
            console.print(
                "[yellow]Still dirty: " + ", ".join(result.segments_failed) + "[/yellow]"
            )
        if result.segments_skipped:
            console.print("Empty, skipped: " + ", ".join(result.segments_skipped))
        if not result.success:
            raise SystemExit(1)
    elif args.command == "stats":
        stats = StatsResponse.from_domain(container.stats_service.get_stats())
        console.print_json(data=stats.model_dump(mode="json"))
    elif args.command == "segments":
        family = SegmentFamily(args.family) if args.family else None
        details = container.stats_service.segment_details(family)
        if not details:
            console.print("[yellow]No segments yet.[/yellow]")
            return
        table = Table(title="Segments")
        for column in ("Name", "URLs", "Capacity", "%", "Size", "Generated", "Dirty"):
            table.add_column(column)
        for detail in details:
            table.add_row(
                detail.name,
                str(detail.urls_count),
                str(detail.capacity),
                f"{detail.percentage:.2f}" + (" (full)" if detail.is_full else ""),
                format_bytes(detail.size_bytes),
                detail.last_generated_at.isoformat() if detail.last_generated_at else "-",
                "yes" if detail.needs_rebuild else "",
            )
        console.print(table)
    elif args.command == "batches":
        page = container.stats_service.list_batches(limit=args.limit, offset=args.offset)
        table = Table(title=f"Batches ({page.total} total)")
        for column in ("#", "Family", "Status", "Requested", "Added", "Skipped", "Failed", "Created"):
            table.add_column(column)
        for batch in page.batches:
            table.add_row(
                str(batch.batch_number),
                batch.family.value,
                batch.status.value,
                str(batch.requested_count),
                str(batch.added_count),
                str(batch.skipped_count),
                str(batch.failed_count),
                batch.created_at.isoformat(timespec="seconds"),
            )
        console.print(table)
        if page.has_more:
            console.print(f"More batches available from offset {page.offset + page.limit}.")
    elif args.command == "entries":
        page = container.stats_service.list_entries(
            page=args.page,
            limit=args.limit,
            entry_type=EntryType(args.entry_type) if args.entry_type else None,
            segment_name=args.segment,
            search=args.search,
        )
        table = Table(title=f"Entries page {page.page}/{page.pages or 1} ({page.total} total)")
        for column in ("URL", "Type", "Segment", "Pos", "Priority", "Freq"):
            table.add_column(column)
        for entry in page.entries:
            table.add_row(
                entry.url,
                entry.entry_type.value,
                entry.segment_name,
                str(entry.position_in_segment),
                f"{entry.priority:.1f}",
                entry.change_frequency.value,
            )
        console.print(table)
    elif args.command == "import-sitemap":
        result = container.sync_service.import_sitemap(args.path.read_bytes())
        console.print_json(data=result.to_mapping())
        if (result.created or result.reactivated) and not args.no_rebuild:
            _rebuild_after_write(container, console, logger)
    elif args.command == "cleanup":
        kinds = [EntityKind(kind) for kind in args.kind] if args.kind else None
        result = container.sync_service.deactivate_inactive_references(kinds)
        console.print_json(data=result.to_mapping())


def _rebuild_after_write(container: Any, console: Console, logger: logging.Logger) -> None:
    """Run the incremental rebuild that follows a write; never fails the command."""

    try:
        result = container.regenerator.rebuild(RebuildMode.INCREMENTAL)
    except Exception:
        logger.exception("Incremental rebuild failed")
        console.print(
            "[yellow]Changes were stored but the rebuild failed; "
            "run 'sitemapper rebuild' to retry.[/yellow]"
        )
        return
    console.print(
        f"Rebuilt {len(result.segments_rebuilt)} segment(s)"
        + (f", {len(result.segments_failed)} still dirty" if result.segments_failed else "")
        + "."
    )


def _read_list(path: Path) -> List[Any]:
    text = path.read_text(encoding="utf-8")
    stripped = text.strip()
    if stripped.startswith("["):
        data = json.loads(stripped)
        if not isinstance(data, list):
            raise ValueError(f"{path} must contain a JSON list")
        return data
    return [line.strip() for line in text.splitlines() if line.strip()]


def _parse_related(values: Sequence[str]) -> Dict[str, str]:
    related: Dict[str, str] = {}
    for value in values:
        field, separator, identifier = value.partition("=")
        if not separator or not field or not identifier:
            raise ValueError(f"Invalid related id '{value}', expected FIELD=ID")
        related[field.strip()] = identifier.strip()
    return related


def _parse_anchor(value: str | None) -> tuple[EntityKind, str] | None:
    if not value:
        return None
    kind, separator, identifier = value.partition(":")
    if not separator or not identifier:
        raise ValueError(f"Invalid anchor '{value}', expected KIND:ID")
    return EntityKind(kind), identifier


def _branch_candidates(args: argparse.Namespace) -> List[BranchCandidate | str]:
    raw: List[Any] = list(args.urls)
    if args.urls_file:
        raw.extend(_read_list(args.urls_file))
    candidates: List[BranchCandidate | str] = []
    for item in raw:
        if isinstance(item, dict):
            candidates.append(
                BranchCandidate(
                    url=item["url"],
                    entry_type=EntryType(item["entry_type"]) if item.get("entry_type") else None,
                    related_ids=item.get("related_ids") or {},
                )
            )
        else:
            candidates.append(str(item))
    return candidates


if __name__ == "__main__":  # pragma: no cover
    main()
    sys.exit(0)
