"""FastAPI routes exposing the sitemap engine."""
from __future__ import annotations

import logging
from typing import Any, Dict

import uvicorn
from dotenv import load_dotenv
from fastapi import APIRouter, BackgroundTasks, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from sitemapper.domain import (
    EntityNotFoundError,
    EntryType,
    IngestionFailedError,
    RebuildMode,
    SegmentFamily,
)
from sitemapper.services.sitemap.container import SitemapContainer, build_sitemap_container
from sitemapper.settings import get_api_bind_host, get_api_port

from .schemas import (
    BatchListResponse,
    BatchResponse,
    BranchPayload,
    CleanupPayload,
    DistributionResponse,
    EntryPageResponse,
    IngestPayload,
    IngestPreviewPayload,
    PlanResponse,
    RebuildPayload,
    SegmentResponse,
    StatsResponse,
    UpsertPayload,
)

logger = logging.getLogger("sitemapper.api")


def configure_cors(app: FastAPI) -> None:
    """Apply the default CORS configuration used by the services."""

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def handle_value_error(exc: ValueError) -> HTTPException:
    detail = str(exc)
    if isinstance(exc, EntityNotFoundError) or "not found" in detail.lower():
        return HTTPException(status_code=404, detail=detail)
    return HTTPException(status_code=400, detail=detail)


def include_routes(
    app: FastAPI, container: SitemapContainer, *, prefix: str = "/sitemap"
) -> None:
    """Register sitemap routes on a FastAPI application."""

    router = APIRouter(prefix=prefix, tags=["Sitemap"])

    def rebuild_incremental() -> None:
        result = container.regenerator.rebuild(RebuildMode.INCREMENTAL)
        if result.segments_failed or not result.success:
            logger.warning(
                "Scheduled rebuild left %s segment(s) dirty (index written: %s)",
                len(result.segments_failed),
                result.success,
            )

    @router.post("/ingest", status_code=201)
    def ingest(payload: IngestPayload, background_tasks: BackgroundTasks) -> Dict[str, Any]:
        try:
            result = container.ingestion_service.ingest(
                payload.candidate_ids,
                payload.family,
                priority=payload.priority,
                change_frequency=payload.change_frequency,
                method=payload.method,
                method_params=payload.method_params,
                initiator=payload.initiator(),
                entry_type=payload.entry_type,
                notes=payload.notes,
            )
        except IngestionFailedError as exc:
            raise HTTPException(status_code=503, detail=str(exc))
        except ValueError as exc:
            raise handle_value_error(exc)

        scheduled = payload.rebuild and bool(result.segments_written)
        if scheduled:
            background_tasks.add_task(rebuild_incremental)
        return {**result.to_mapping(), "rebuild_scheduled": scheduled}

    @router.post("/ingest/preview", response_model=PlanResponse)
    def preview_ingest(payload: IngestPreviewPayload) -> PlanResponse:
        try:
            plan = container.ingestion_service.preview(payload.count, payload.family)
        except ValueError as exc:
            raise handle_value_error(exc)
        return PlanResponse.from_domain(plan)

    @router.post("/entries/upsert")
    def upsert_entry(payload: UpsertPayload) -> Dict[str, Any]:
        try:
            result = container.sync_service.upsert_single(
                payload.entry_type,
                payload.url,
                payload.related_ids,
                payload.active,
                priority=payload.priority,
                change_frequency=payload.change_frequency,
                added_by=payload.added_by,
            )
        except ValueError as exc:
            raise handle_value_error(exc)
        return result.to_mapping()

    @router.post("/branches/preview")
    def preview_branches(payload: BranchPayload) -> Dict[str, Any]:
        try:
            preview = container.sync_service.preview_branches(
                payload.family, payload.to_candidates(), anchor=payload.anchor()
            )
        except ValueError as exc:
            raise handle_value_error(exc)
        return preview.to_mapping()

    @router.post("/branches/generate", status_code=201)
    def generate_branches(payload: BranchPayload) -> Dict[str, Any]:
        try:
            result = container.sync_service.generate_branches(
                payload.family,
                payload.to_candidates(),
                anchor=payload.anchor(),
                added_by=payload.added_by,
            )
        except ValueError as exc:
            raise handle_value_error(exc)
        return result.to_mapping()

    @router.post("/rebuild")
    def rebuild(payload: RebuildPayload | None = None) -> Dict[str, Any]:
        payload = payload or RebuildPayload()
        result = container.regenerator.rebuild(
            payload.mode, max_workers=payload.max_workers
        )
        return result.to_mapping()

    @router.post("/cleanup")
    def cleanup(payload: CleanupPayload | None = None) -> Dict[str, Any]:
        kinds = payload.kinds if payload else None
        return container.sync_service.deactivate_inactive_references(kinds).to_mapping()

    @router.get("/distribution", response_model=DistributionResponse)
    def distribution(family: SegmentFamily | None = None) -> DistributionResponse:
        return DistributionResponse.from_domain(
            container.stats_service.distribution_snapshot(family)
        )

    @router.get("/segments", response_model=list[SegmentResponse])
    def segments(family: SegmentFamily | None = None) -> list[SegmentResponse]:
        return [
            SegmentResponse.from_domain(detail)
            for detail in container.stats_service.segment_details(family)
        ]

    @router.get("/stats", response_model=StatsResponse)
    def stats() -> StatsResponse:
        return StatsResponse.from_domain(container.stats_service.get_stats())

    @router.get("/batches", response_model=BatchListResponse)
    def list_batches(
        limit: int = Query(20, ge=1, le=500), offset: int = Query(0, ge=0)
    ) -> BatchListResponse:
        page = container.stats_service.list_batches(limit=limit, offset=offset)
        return BatchListResponse.from_domain(page)

    @router.get("/batches/{batch_number}", response_model=BatchResponse)
    def get_batch(batch_number: int) -> BatchResponse:
        try:
            batch = container.stats_service.get_batch(batch_number)
        except ValueError as exc:
            raise handle_value_error(exc)
        return BatchResponse.from_domain(batch)

    @router.get("/entries", response_model=EntryPageResponse)
    def list_entries(
        page: int = Query(1, ge=1),
        limit: int = Query(50, ge=1, le=500),
        entry_type: EntryType | None = None,
        segment: str | None = None,
        search: str | None = None,
    ) -> EntryPageResponse:
        result = container.stats_service.list_entries(
            page=page,
            limit=limit,
            entry_type=entry_type,
            segment_name=segment,
            search=search,
        )
        return EntryPageResponse.from_domain(result)

    app.include_router(router)


def create_app(container: SitemapContainer | None = None) -> FastAPI:
    """Create the FastAPI application with the sitemap routes configured."""

    container = container or build_sitemap_container()
    app = FastAPI(
        title="Sitemapper API",
        version="1.0.0",
        description=(
            "Segmented sitemap inventory: batch ingestion, catalog sync hooks "
            "and artifact regeneration."
        ),
    )
    app.state.container = container
    configure_cors(app)
    include_routes(app, container)
    return app


def run() -> None:
    """Run the sitemap API using Uvicorn."""

    load_dotenv()
    uvicorn.run(
        "sitemapper.services.sitemap.api:create_app",
        host=get_api_bind_host(),
        port=get_api_port(),
        factory=True,
    )


__all__ = ["configure_cors", "create_app", "handle_value_error", "include_routes", "run"]
