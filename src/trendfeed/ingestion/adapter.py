"""Source adapter interface and the building blocks adapters share."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Any, TypeVar

import httpx

from trendfeed.ingestion.normalize import FeedItem
from trendfeed.ingestion.options import FetchOptions

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; TrendFeed/1.0)"


class SourceFetchError(Exception):
    """Upstream returned a non-success HTTP status."""

    def __init__(self, source: str, status_code: int, reason: str = "") -> None:
        super().__init__(f"{source} API error: {status_code} {reason}".rstrip())
        self.source = source
        self.status_code = status_code
        self.reason = reason


@dataclass(frozen=True)
class FetchResult:
    """Items from one fetch and whether the fetch itself succeeded.

    ``ok`` is False when the adapter failed, so callers can tell a broken
    upstream apart from a source that simply has nothing new.
    """

    items: list[FeedItem]
    ok: bool = True


class SourceAdapter(ABC):
    """Abstract base class for source adapters.

    Every adapter knows how to fetch and normalize items from one provider.
    ``fetch`` never raises for ordinary failures (HTTP errors, malformed
    payloads, empty results); it logs the cause and returns an empty list.
    """

    options_type: type[FetchOptions] = FetchOptions
    default_count: int = 10

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider tag, also the registry key."""

    @abstractmethod
    async def _fetch(self, options: Any) -> list[FeedItem]:
        """Fetch and normalize items. May raise; ``fetch`` contains it."""

    async def fetch(self, options: FetchOptions | None = None) -> list[FeedItem]:
        """Fetch up to ``options.count`` normalized items, or [] on failure."""
        return (await self.fetch_result(options)).items

    async def fetch_result(self, options: FetchOptions | None = None) -> FetchResult:
        """Like ``fetch``, but reports a failed fetch as ``ok=False``."""
        opts = self._coerce_options(options)
        items = await self.safe_execute(lambda: self._fetch(opts), None)
        if items is None:
            return FetchResult(items=[], ok=False)
        valid = [item for item in items if item.id and item.title and item.source]
        if len(valid) < len(items):
            logger.debug(
                "%s dropped %d item(s) without id/title/source",
                self.name, len(items) - len(valid),
            )
        return FetchResult(items=valid)

    def _coerce_options(self, options: FetchOptions | None) -> Any:
        if isinstance(options, self.options_type):
            opts = options
        elif options is None:
            opts = self.options_type()
        else:
            opts = self.options_type(count=options.count)
        if not opts.count:
            opts = replace(opts, count=self.default_count)
        return opts

    async def safe_get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """GET ``url``; raise SourceFetchError on a non-2xx status."""
        response = await self._client.get(url, params=params, headers=headers)
        if not response.is_success:
            raise SourceFetchError(self.name, response.status_code, response.reason_phrase)
        return response

    async def safe_execute(
        self,
        operation: Callable[[], Awaitable[T]],
        fallback: T,
    ) -> T:
        """Await ``operation``; on any error log it and return ``fallback``."""
        try:
            return await operation()
        except Exception:
            logger.exception("Failed to fetch from %s", self.name)
            return fallback
