"""API route handlers for the trendfeed web API."""

from __future__ import annotations

import logging
import sqlite3

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response

from trendfeed.aggregation.freshness import decide
from trendfeed.enrichment.summarizer import (
    Enricher,
    EnrichmentError,
    EnrichmentNotConfiguredError,
)
from trendfeed.jobs import RefreshService
from trendfeed.storage.transfer import export_data, import_data
from trendfeed.web.models import (
    FeedItemModel,
    FeedsResponse,
    FreshnessResponse,
    ImportRequest,
    MetadataModel,
    RecommendationsResponse,
    RefreshResponse,
    SmartRefreshResponse,
    SourcesResponse,
    SummaryRequest,
    SummaryResponse,
    TagsRequest,
    TagsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()
health_router = APIRouter()

API_NOT_CONFIGURED = "API_NOT_CONFIGURED"
GENERATION_FAILED = "GENERATION_FAILED"

_EXPORT_MEDIA_TYPES = {"json": "application/json", "csv": "text/csv"}


def _service(request: Request) -> RefreshService:
    return request.app.state.service


def _enricher(request: Request) -> Enricher:
    return request.app.state.enricher


@health_router.get("/health")
async def health(request: Request) -> JSONResponse:
    """Check store connectivity and return health status."""
    try:
        await _service(request).state.store.get(["__health__"])
        return JSONResponse({"status": "healthy", "database": "ok"})
    except (sqlite3.Error, OSError) as exc:
        logger.warning("Health check failed: %s", exc)
        return JSONResponse(
            {"status": "unhealthy", "database": "error", "detail": str(exc)},
            status_code=503,
        )


@router.get("/feeds", response_model=FeedsResponse, response_model_exclude_none=True)
async def feeds(request: Request) -> FeedsResponse:
    data = await _service(request).get_latest_data()
    return FeedsResponse(
        config=data.config.to_dict() if data.config else None,
        feeds=[FeedItemModel.from_item(item) for item in data.feeds],
        last_update=data.last_update,
    )


@router.get("/freshness", response_model=FreshnessResponse)
async def freshness(request: Request) -> FreshnessResponse:
    metadata = await _service(request).state.get_data_metadata()
    return FreshnessResponse(
        strategy=decide(metadata).value,
        metadata=MetadataModel.from_metadata(metadata),
    )


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(request: Request) -> RefreshResponse:
    """Force a full refresh, bypassing every source cache."""
    success = await _service(request).refresh()
    return RefreshResponse(success=success)


@router.post("/refresh/smart", response_model=SmartRefreshResponse)
async def smart_refresh(request: Request) -> SmartRefreshResponse:
    result = await _service(request).smart_refresh()
    return SmartRefreshResponse(
        strategy=result.strategy.value,
        started=result.started,
        metadata=MetadataModel.from_metadata(result.metadata),
    )


@router.get("/sources", response_model=SourcesResponse)
async def sources(request: Request) -> SourcesResponse:
    return SourcesResponse(sources=_service(request).fetcher.registry.names())


@router.post("/items/summary", response_model=SummaryResponse, response_model_exclude_none=True)
async def item_summary(request: Request, body: SummaryRequest) -> SummaryResponse:
    try:
        summary = await _enricher(request).generate_summary(
            body.item.to_item(), skip_cache=body.skip_cache
        )
    except EnrichmentNotConfiguredError as exc:
        return SummaryResponse(success=False, error=str(exc), error_type=API_NOT_CONFIGURED)
    except EnrichmentError as exc:
        return SummaryResponse(success=False, error=str(exc), error_type=GENERATION_FAILED)
    return SummaryResponse(success=True, summary=summary)


@router.post("/items/tags", response_model=TagsResponse, response_model_exclude_none=True)
async def item_tags(request: Request, body: TagsRequest) -> TagsResponse:
    try:
        result = await _enricher(request).generate_tags(body.content, skip_cache=body.skip_cache)
    except EnrichmentNotConfiguredError as exc:
        return TagsResponse(success=False, error=str(exc), error_type=API_NOT_CONFIGURED)
    except EnrichmentError as exc:
        return TagsResponse(success=False, error=str(exc), error_type=GENERATION_FAILED)
    return TagsResponse(success=True, tags=result.tags, category=result.category)


@router.get(
    "/recommendations",
    response_model=RecommendationsResponse,
    response_model_exclude_none=True,
)
async def recommendations(request: Request) -> RecommendationsResponse:
    items = await _service(request).state.get_feeds()
    picked = await _enricher(request).recommend(items)
    return RecommendationsResponse(items=[FeedItemModel.from_item(item) for item in picked])


@router.get("/export")
async def export(request: Request, format: str = Query("json")) -> Response:
    try:
        body = await export_data(_service(request).state, format)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return Response(
        content=body,
        media_type=_EXPORT_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="trendfeed-export.{format}"'},
    )


@router.post("/import", response_model=RefreshResponse)
async def import_(request: Request, body: ImportRequest) -> RefreshResponse:
    ok = await import_data(_service(request).state, body.data, body.format)
    if not ok:
        raise HTTPException(status_code=400, detail="Import failed")
    return RefreshResponse(success=True)
