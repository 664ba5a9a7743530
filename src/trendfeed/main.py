"""Application entry point — runs scheduler + web server in a single process."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from contextlib import asynccontextmanager

import httpx
import uvicorn

from trendfeed.aggregation.fetcher import DataFetcher
from trendfeed.config import Config, load_config
from trendfeed.enrichment.summarizer import Enricher
from trendfeed.ingestion import build_registry
from trendfeed.jobs import RefreshService
from trendfeed.scheduler import build_scheduler
from trendfeed.storage import FeedState, SQLiteKeyValueStore
from trendfeed.web.app import create_app

logger = logging.getLogger("trendfeed")


def _setup_logging(log_level: str, log_format: str) -> None:
    """Configure root logger based on config."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps(
                {
                    "time": "%(asctime)s",
                    "level": "%(levelname)s",
                    "logger": "%(name)s",
                    "message": "%(message)s",
                }
            )
        )
    else:
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def build_service(config: Config, client: httpx.AsyncClient) -> RefreshService:
    """Wire the registry, store and fetcher into a refresh service."""
    state = FeedState(SQLiteKeyValueStore(config.database_path))
    fetcher = DataFetcher(build_registry(client), state)
    return RefreshService(fetcher, state)


def main() -> None:
    """Load config, set up logging, and start scheduler + web server."""
    config = load_config()

    _setup_logging(config.log_level, config.log_format)

    logger.info(
        "trendfeed starting (env=%s, db=%s, model=%s)",
        config.app_env,
        config.database_path,
        config.llm_model,
    )

    client = httpx.AsyncClient(
        timeout=config.http_timeout_seconds, follow_redirects=True
    )
    service = build_service(config, client)
    enricher = Enricher(service.state, config)
    scheduler = build_scheduler(service, config.daily_refresh_hour)

    @asynccontextmanager
    async def lifespan(app):
        logger.info("Scheduler starting")
        scheduler.start()
        # Initial refresh runs in the background so the API is available immediately
        initial = asyncio.create_task(service.initialize())
        yield
        logger.info("Scheduler shutting down")
        scheduler.shutdown(wait=False)
        if not initial.done():
            initial.cancel()
        await client.aclose()

    app = create_app(service, enricher, lifespan=lifespan)

    uvicorn.run(app, host=config.web_host, port=config.web_port)


if __name__ == "__main__":
    main()
