"""Data fetcher — turns configured sources into one merged, sorted feed.

Each source's last fetch result is cached under ``cache_<source id>`` for
``CACHE_TTL_MS``. Sources are fetched concurrently and in isolation: one
source failing or hanging affects only its own contribution.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

from trendfeed.aggregation.freshness import DataMetadata
from trendfeed.ingestion.normalize import FeedItem
from trendfeed.ingestion.options import (
    DEFAULT_TIME_RANGE,
    ArxivOptions,
    FetchOptions,
    HackerNewsOptions,
    RSSOptions,
)
from trendfeed.ingestion.registry import SourceRegistry
from trendfeed.settings import AppConfig, SourceConfig
from trendfeed.storage.state import CACHE_KEY_PREFIX, CacheEntry, FeedState

logger = logging.getLogger(__name__)

CACHE_TTL_MS = 30 * 60 * 1000

_PLAIN_SOURCE_TYPES = frozenset({"GitHub", "DevTo", "Reddit", "ProductHunt", "EchoJS"})


@dataclass(frozen=True)
class RefreshOptions:
    """Per-call refresh behaviour. ``force_bypass_cache`` skips the TTL check."""

    force_bypass_cache: bool = False


def _now_ms() -> int:
    return int(time.time() * 1000)


def adapter_name_for(source_type: str) -> str:
    """Registry name serving a source type. Custom feeds are plain RSS."""
    return "RSS" if source_type == "Custom" else source_type


def cache_key_for(source: SourceConfig) -> str:
    return f"{CACHE_KEY_PREFIX}{source.id or source.type}"


def options_for(source: SourceConfig) -> FetchOptions:
    """Build the typed fetch options for a source. Raises ValueError on an unknown type."""
    count = source.fetch_count
    if source.type == "HackerNews":
        if source.min_score is not None:
            return HackerNewsOptions(count=count, min_score=source.min_score)
        return HackerNewsOptions(count=count)
    if source.type == "ArXiv":
        return ArxivOptions(count=count)
    if source.type in ("RSS", "Custom"):
        return RSSOptions(
            count=count,
            url=source.url or "",
            source_name=source.name,
            time_range=source.fetch_time_range or DEFAULT_TIME_RANGE,
        )
    if source.type in _PLAIN_SOURCE_TYPES:
        return FetchOptions(count=count)
    raise ValueError(f"Unknown source type: {source.type}")


def sort_feed(items: list[FeedItem]) -> list[FeedItem]:
    """Pinned items first, then newest first. Items without a date sort last.

    The sort is stable, so ties keep their merge order.
    """
    return sorted(items, key=lambda item: (not item.is_pinned, -item.sort_timestamp()))


class DataFetcher:
    """Fetches, caches, and merges feed items from configured sources."""

    def __init__(
        self,
        registry: SourceRegistry,
        state: FeedState,
        cache_ttl: int = CACHE_TTL_MS,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._registry = registry
        self._state = state
        self._cache_ttl = cache_ttl
        self._clock = clock

    @property
    def registry(self) -> SourceRegistry:
        return self._registry

    async def fetch_source(
        self, source: SourceConfig, refresh: RefreshOptions = RefreshOptions()
    ) -> list[FeedItem]:
        """Fetch one source, serving its cache entry while it is fresh.

        Any failure falls back to the cached items, or [] without a cache.
        Only a successful fetch replaces the cache entry.
        """
        key = cache_key_for(source)
        cached: CacheEntry | None = None
        try:
            cached = await self._state.get_feed_cache(key)
            if (
                cached is not None
                and not refresh.force_bypass_cache
                and self._clock() - cached.timestamp < self._cache_ttl
            ):
                logger.debug("Cache hit for %s", key)
                return cached.items

            name = adapter_name_for(source.type)
            if not self._registry.has(name):
                logger.warning("Source %s not found in registry", name)
                return cached.items if cached else []

            result = await self._registry.fetch_result_from(name, options_for(source))
            if not result.ok:
                logger.warning(
                    "Fetch failed for %s, serving %d cached item(s)",
                    source.name, len(cached.items) if cached else 0,
                )
                return cached.items if cached else []

            await self._state.save_feed_cache(
                key, CacheEntry(items=result.items, timestamp=self._clock())
            )
            return result.items
        except Exception:
            logger.exception("Error fetching %s (%s)", source.name, source.type)
            return cached.items if cached else []

    async def fetch_all(
        self, sources: list[SourceConfig], refresh: RefreshOptions = RefreshOptions()
    ) -> list[FeedItem]:
        """Fetch every enabled source concurrently and merge the results."""
        enabled = [source for source in sources if source.enabled]
        results = await asyncio.gather(
            *(self.fetch_source(source, refresh) for source in enabled),
            return_exceptions=True,
        )

        merged: list[FeedItem] = []
        for source, result in zip(enabled, results):
            if isinstance(result, BaseException):
                logger.error("Error fetching %s: %s", source.name, result)
                continue
            merged.extend(replace(item, is_pinned=source.is_pinned) for item in result)

        return sort_feed(merged)

    async def trigger_refresh(
        self, config: AppConfig, refresh: RefreshOptions = RefreshOptions()
    ) -> list[FeedItem]:
        """Run a full refresh and persist the capped feed and its metadata."""
        items = (await self.fetch_all(config.sources, refresh))[: config.max_items]
        await self._state.save_feeds(items)
        await self._state.update_last_update(self._clock())
        metadata = await self._state.update_data_metadata(DataMetadata.now())
        logger.info(
            "Refreshed %d items from %d sources (%s)",
            len(items),
            sum(1 for source in config.sources if source.enabled),
            metadata.last_update_date,
        )
        return items
