"""Product Hunt source adapter — RSS feed read through public proxies.

The feed is not fetched directly. A list of proxy strategies is tried in
preference order, and each strategy knows how to unwrap its own response
shape. All attempts are issued at once; the earliest-preferred success wins.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import quote, urlparse

import feedparser
import httpx

from trendfeed.ingestion.adapter import SourceAdapter
from trendfeed.ingestion.feedxml import strip_html
from trendfeed.ingestion.normalize import FeedItem, clean_text, make_item_id, parse_timestamp
from trendfeed.ingestion.options import FetchOptions

logger = logging.getLogger(__name__)

_PRODUCT_HUNT_FEED = "https://www.producthunt.com/feed"


class ProxyExhaustedError(Exception):
    """Every proxy strategy failed."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__(f"All RSS proxies failed: {'; '.join(errors)}")
        self.errors = errors


@dataclass(frozen=True)
class FeedEntry:
    title: str
    link: str
    description: str
    pub_date: str
    author: str | None = None


@dataclass(frozen=True)
class ProxyStrategy:
    name: str
    build_url: Callable[[str], str]
    parse: Callable[[httpx.Response], list[FeedEntry]]


def parse_rss_entries(content: str) -> list[FeedEntry]:
    """Parse raw RSS/Atom XML into feed entries."""
    feed = feedparser.parse(content)
    return [
        FeedEntry(
            title=entry.get("title", ""),
            link=entry.get("link", ""),
            description=entry.get("summary", "") or entry.get("description", ""),
            pub_date=entry.get("published", "") or entry.get("updated", ""),
            author=entry.get("author") or None,
        )
        for entry in feed.entries
    ]


def _parse_rss2json(resp: httpx.Response) -> list[FeedEntry]:
    return [
        FeedEntry(
            title=item.get("title") or "",
            link=item.get("link") or "",
            description=item.get("description") or "",
            pub_date=item.get("pubDate") or "",
            author=item.get("author") or None,
        )
        for item in resp.json()["items"]
    ]


def _parse_allorigins(resp: httpx.Response) -> list[FeedEntry]:
    return parse_rss_entries(resp.json()["contents"])


def _parse_raw(resp: httpx.Response) -> list[FeedEntry]:
    return parse_rss_entries(resp.text)


PROXY_STRATEGIES = (
    ProxyStrategy(
        name="rss2json",
        build_url=lambda feed: f"https://api.rss2json.com/v1/api.json?rss_url={quote(feed, safe='')}",
        parse=_parse_rss2json,
    ),
    ProxyStrategy(
        name="allorigins",
        build_url=lambda feed: f"https://api.allorigins.win/get?url={quote(feed, safe='')}",
        parse=_parse_allorigins,
    ),
    ProxyStrategy(
        name="corsproxy",
        build_url=lambda feed: f"https://corsproxy.io/?{quote(feed, safe='')}",
        parse=_parse_raw,
    ),
)


def _slug(link: str) -> str:
    return urlparse(link).path.rstrip("/").rsplit("/", 1)[-1]


class ProductHuntAdapter(SourceAdapter):
    """Adapter for the Product Hunt feed."""

    default_count = 5

    def __init__(
        self,
        client: httpx.AsyncClient,
        strategies: tuple[ProxyStrategy, ...] = PROXY_STRATEGIES,
    ) -> None:
        super().__init__(client)
        self._strategies = strategies

    @property
    def name(self) -> str:
        return "ProductHunt"

    async def _fetch(self, options: FetchOptions) -> list[FeedItem]:
        entries = await self._fetch_with_fallback()

        items = [
            FeedItem(
                id=make_item_id(self.name, _slug(entry.link) or index),
                title=clean_text(entry.title),
                source=self.name,
                url=entry.link,
                summary=clean_text(strip_html(entry.description), 200) or None,
                published_at=parse_timestamp(entry.pub_date),
                author=entry.author or "Product Hunt",
            )
            for index, entry in enumerate(entries[: options.count])
        ]
        logger.info("Fetched %d items from Product Hunt", len(items))
        return items

    async def _attempt(self, strategy: ProxyStrategy) -> list[FeedEntry]:
        resp = await self.safe_get(strategy.build_url(_PRODUCT_HUNT_FEED))
        entries = strategy.parse(resp)
        if not entries:
            raise ValueError("No items parsed from RSS feed")
        return entries

    async def _fetch_with_fallback(self) -> list[FeedEntry]:
        tasks = [asyncio.create_task(self._attempt(s)) for s in self._strategies]
        errors: list[str] = []
        try:
            for strategy, task in zip(self._strategies, tasks):
                try:
                    return await task
                except Exception as exc:
                    logger.warning("[ProductHunt] Proxy %s failed: %s", strategy.name, exc)
                    errors.append(f"{strategy.name}: {exc}")
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        raise ProxyExhaustedError(errors)
