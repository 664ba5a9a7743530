"""FastAPI application factory for the trendfeed web API."""

from __future__ import annotations

from fastapi import FastAPI

from trendfeed.enrichment.summarizer import Enricher
from trendfeed.jobs import RefreshService
from trendfeed.web.routes import health_router, router


def create_app(service: RefreshService, enricher: Enricher, lifespan=None) -> FastAPI:
    """Build and return a configured FastAPI application."""
    app = FastAPI(title="trendfeed", docs_url="/api/docs", lifespan=lifespan)
    app.state.service = service
    app.state.enricher = enricher
    app.include_router(health_router)
    app.include_router(router, prefix="/api/v1")
    return app
