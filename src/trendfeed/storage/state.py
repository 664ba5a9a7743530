"""Typed access to the persisted application state."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from trendfeed.aggregation.freshness import DataMetadata
from trendfeed.ingestion.normalize import FeedItem
from trendfeed.settings import DEFAULT_SOURCES, AppConfig
from trendfeed.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

CONFIG_KEY = "trendfeed_config"
FEEDS_KEY = "trendfeed_feeds"
LAST_UPDATE_KEY = "trendfeed_last_update"
DATA_METADATA_KEY = "trendfeed_data_metadata"
CACHE_KEY_PREFIX = "cache_"


def items_from_dicts(raw: Any) -> list[FeedItem]:
    """Decode stored item dicts, skipping entries that are not valid items."""
    if not isinstance(raw, list):
        return []
    items = []
    for entry in raw:
        try:
            items.append(FeedItem.from_dict(entry))
        except (KeyError, TypeError, AttributeError):
            logger.warning("Skipping malformed stored item: %r", entry)
    return items


@dataclass(frozen=True)
class CacheEntry:
    """One source's last fetch result. ``timestamp`` is epoch milliseconds."""

    items: list[FeedItem]
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Any) -> CacheEntry | None:
        if not isinstance(data, dict):
            return None
        timestamp = data.get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            timestamp = 0
        return cls(items=items_from_dicts(data.get("items")), timestamp=int(timestamp))


class FeedState:
    """Wraps a KeyValueStore with the application's keys and types."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def _get_one(self, key: str) -> Any:
        result = await self.store.get([key])
        return result.get(key)

    async def get_config(self) -> AppConfig:
        """Stored config, or the defaults when absent or unreadable."""
        raw = await self._get_one(CONFIG_KEY)
        if raw is None:
            return AppConfig()
        try:
            return AppConfig.from_dict(raw)
        except (KeyError, ValueError, TypeError, AttributeError):
            logger.exception("Stored config is malformed, using defaults")
            return AppConfig()

    async def save_config(self, config: AppConfig) -> None:
        await self.store.set({CONFIG_KEY: config.to_dict()})

    async def merge_default_sources(self) -> AppConfig:
        """Append default sources whose ids are not configured yet.

        Existing sources are left untouched. Saves only when something was
        added.
        """
        config = await self.get_config()
        existing = {source.id for source in config.sources}
        missing = [source for source in DEFAULT_SOURCES if source.id not in existing]
        if not missing:
            return config
        config = AppConfig(
            sources=[*config.sources, *missing],
            api_base_url=config.api_base_url,
            api_key=config.api_key,
            api_model=config.api_model,
            theme=config.theme,
            max_items=config.max_items,
        )
        await self.save_config(config)
        logger.info(
            "Added %d default sources: %s",
            len(missing), ", ".join(source.id for source in missing),
        )
        return config

    async def get_feeds(self) -> list[FeedItem]:
        return items_from_dicts(await self._get_one(FEEDS_KEY))

    async def save_feeds(self, items: list[FeedItem]) -> None:
        await self.store.set({FEEDS_KEY: [item.to_dict() for item in items]})

    async def get_cache(self, key: str) -> Any:
        return await self._get_one(key)

    async def save_cache(self, key: str, value: Any) -> None:
        await self.store.set({key: value})

    async def get_feed_cache(self, key: str) -> CacheEntry | None:
        return CacheEntry.from_dict(await self.get_cache(key))

    async def save_feed_cache(self, key: str, entry: CacheEntry) -> None:
        await self.save_cache(key, entry.to_dict())

    async def get_last_update(self) -> int:
        """Epoch milliseconds of the last refresh, 0 if never."""
        value = await self._get_one(LAST_UPDATE_KEY)
        return int(value) if isinstance(value, (int, float)) else 0

    async def update_last_update(self, timestamp: int | None = None) -> None:
        if timestamp is None:
            timestamp = int(time.time() * 1000)
        await self.store.set({LAST_UPDATE_KEY: timestamp})

    async def get_data_metadata(self) -> DataMetadata | None:
        return DataMetadata.from_dict(await self._get_one(DATA_METADATA_KEY))

    async def update_data_metadata(self, metadata: DataMetadata | None = None) -> DataMetadata:
        metadata = metadata or DataMetadata.now()
        await self.store.set({DATA_METADATA_KEY: metadata.to_dict()})
        return metadata

    async def clear_all(self) -> None:
        await self.store.clear()
        logger.info("Cleared all stored state")
