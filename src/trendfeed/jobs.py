"""Refresh jobs — startup initialization, forced and policy-driven refreshes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from trendfeed.aggregation.fetcher import DataFetcher, RefreshOptions
from trendfeed.aggregation.freshness import DataMetadata, RefreshStrategy, decide
from trendfeed.ingestion.normalize import FeedItem
from trendfeed.settings import AppConfig
from trendfeed.storage.state import FeedState

logger = logging.getLogger(__name__)

FORCED = RefreshOptions(force_bypass_cache=True)


@dataclass(frozen=True)
class LatestData:
    config: AppConfig | None
    feeds: list[FeedItem] = field(default_factory=list)
    last_update: int = 0


@dataclass(frozen=True)
class SmartRefreshResult:
    strategy: RefreshStrategy
    metadata: DataMetadata | None
    started: bool


class RefreshService:
    """Runs feed refreshes with at most one in flight.

    A refresh requested while another is running waits for the running one
    instead of starting a second.
    """

    def __init__(self, fetcher: DataFetcher, state: FeedState) -> None:
        self.fetcher = fetcher
        self.state = state
        self._current: asyncio.Task[bool] | None = None
        self._background: set[asyncio.Task[bool]] = set()

    @property
    def is_refreshing(self) -> bool:
        return self._current is not None and not self._current.done()

    async def _run_refresh(self, refresh: RefreshOptions) -> bool:
        try:
            config = await self.state.get_config()
            await self.fetcher.trigger_refresh(config, refresh)
            return True
        except Exception:
            logger.exception("Refresh failed")
            return False

    async def refresh(self, refresh: RefreshOptions = FORCED) -> bool:
        """Refresh all enabled sources. Returns False on failure, never raises."""
        if not self.is_refreshing:
            self._current = asyncio.create_task(self._run_refresh(refresh))
        else:
            logger.info("Refresh already running, waiting for it")
        return await asyncio.shield(self._current)

    async def initialize(self) -> bool:
        """Add any new default sources to the stored config, then refresh."""
        try:
            await self.state.merge_default_sources()
        except Exception:
            logger.exception("Initialization failed")
            return False
        return await self.refresh()

    async def get_latest_data(self) -> LatestData:
        try:
            return LatestData(
                config=await self.state.get_config(),
                feeds=await self.state.get_feeds(),
                last_update=await self.state.get_last_update(),
            )
        except Exception:
            logger.exception("Failed to read latest data")
            return LatestData(config=None)

    async def smart_refresh(self) -> SmartRefreshResult:
        """Apply the freshness policy to the stored data.

        IMMEDIATE does nothing. SILENT starts a forced refresh in the
        background and returns at once. FORCE waits for a forced refresh.
        Nothing starts while a refresh is already running.
        """
        metadata = await self.state.get_data_metadata()
        strategy = decide(metadata)
        if self.is_refreshing or strategy is RefreshStrategy.IMMEDIATE:
            return SmartRefreshResult(strategy, metadata, started=False)

        if strategy is RefreshStrategy.SILENT:
            task = asyncio.create_task(self.refresh())
            self._background.add(task)
            task.add_done_callback(self._background.discard)
            logger.info("Data is stale, refreshing in the background")
            return SmartRefreshResult(strategy, metadata, started=True)

        logger.info("Data is outdated, refreshing before serving")
        await self.refresh()
        return SmartRefreshResult(strategy, await self.state.get_data_metadata(), started=True)

    async def run_scheduled_refresh(self) -> None:
        """Daily refresh job. Never raises into the scheduler."""
        logger.info("Running scheduled refresh")
        ok = await self.refresh()
        if not ok:
            logger.warning("Scheduled refresh did not complete; next run will retry")
