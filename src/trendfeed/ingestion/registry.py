"""Source registry — maps provider names to adapter instances."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from trendfeed.ingestion.adapter import FetchResult

if TYPE_CHECKING:
    from trendfeed.ingestion.adapter import SourceAdapter
    from trendfeed.ingestion.normalize import FeedItem
    from trendfeed.ingestion.options import FetchOptions

logger = logging.getLogger(__name__)


class DuplicateSourceError(ValueError):
    """An adapter with the same name is already registered."""


class SourceRegistry:
    """Catalog of adapter instances with isolated fan-out fetching."""

    def __init__(self) -> None:
        self._adapters: dict[str, SourceAdapter] = {}

    def register(self, adapter: SourceAdapter) -> None:
        """Register an adapter under its name. Raises DuplicateSourceError."""
        if adapter.name in self._adapters:
            raise DuplicateSourceError(f"Source {adapter.name} is already registered")
        self._adapters[adapter.name] = adapter

    def unregister(self, name: str) -> None:
        self._adapters.pop(name, None)

    def has(self, name: str) -> bool:
        return name in self._adapters

    def get(self, name: str) -> SourceAdapter | None:
        return self._adapters.get(name)

    def names(self) -> list[str]:
        """Registered names in registration order."""
        return list(self._adapters)

    def clear(self) -> None:
        self._adapters.clear()

    def __len__(self) -> int:
        return len(self._adapters)

    async def fetch_from(
        self, name: str, options: FetchOptions | None = None
    ) -> list[FeedItem]:
        """Fetch from one adapter. Never raises; returns [] on any failure."""
        adapter = self.get(name)
        if adapter is None:
            logger.error("Source %s not found in registry", name)
            return []
        try:
            return await adapter.fetch(options)
        except Exception:
            logger.exception("Error fetching from %s", name)
            return []

    async def fetch_result_from(
        self, name: str, options: FetchOptions | None = None
    ) -> FetchResult:
        """Fetch from one adapter, reporting failure as ``ok=False``."""
        adapter = self.get(name)
        if adapter is None:
            logger.error("Source %s not found in registry", name)
            return FetchResult(items=[], ok=False)
        try:
            return await adapter.fetch_result(options)
        except Exception:
            logger.exception("Error fetching from %s", name)
            return FetchResult(items=[], ok=False)

    async def fetch_from_many(
        self, names: list[str], options: FetchOptions | None = None
    ) -> list[FeedItem]:
        """Fetch from several adapters concurrently.

        Results are concatenated in the order ``names`` was given, not in
        completion order.
        """
        results = await asyncio.gather(
            *(self.fetch_from(name, options) for name in names)
        )
        return [item for items in results for item in items]
