"""Hacker News source adapter — top stories above a score threshold."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from trendfeed.ingestion.adapter import SourceAdapter
from trendfeed.ingestion.feedxml import strip_html
from trendfeed.ingestion.normalize import FeedItem, clean_text, make_item_id, parse_timestamp
from trendfeed.ingestion.options import HackerNewsOptions

logger = logging.getLogger(__name__)

_HN_API = "https://hacker-news.firebaseio.com/v0"
_HN_TOP_URL = f"{_HN_API}/topstories.json"
_HN_ITEM_URL = f"{_HN_API}/item/{{}}.json"
_HN_DISCUSSION_URL = "https://news.ycombinator.com/item?id={}"

# The score filter runs after the detail fetch, so more ids are requested
# than needed. This does not guarantee ``count`` results.
OVERFETCH_FACTOR = 3
OVERFETCH_CAP = 100


class HackerNewsAdapter(SourceAdapter):
    """Adapter for Hacker News top stories (id list, then per-id details)."""

    options_type = HackerNewsOptions
    default_count = 15

    @property
    def name(self) -> str:
        return "HackerNews"

    async def _fetch(self, options: HackerNewsOptions) -> list[FeedItem]:
        resp = await self.safe_get(_HN_TOP_URL)
        story_ids = resp.json()
        if not isinstance(story_ids, list):
            raise ValueError("topstories payload is not a list")

        fetch_count = min(options.count * OVERFETCH_FACTOR, OVERFETCH_CAP)
        details = await asyncio.gather(
            *(self._fetch_item(story_id) for story_id in story_ids[:fetch_count]),
            return_exceptions=True,
        )

        items: list[FeedItem] = []
        for story_id, data in zip(story_ids, details):
            if isinstance(data, Exception):
                logger.warning("Failed to fetch HN item %s: %s", story_id, data)
                continue
            if not data or not data.get("title"):
                continue
            if (data.get("score") or 0) < options.min_score:
                continue
            items.append(self._to_item(data))
            if len(items) >= options.count:
                break

        logger.info("Fetched %d items from Hacker News", len(items))
        return items

    async def _fetch_item(self, story_id: int) -> dict[str, Any] | None:
        resp = await self.safe_get(_HN_ITEM_URL.format(story_id))
        return resp.json()

    def _to_item(self, data: dict[str, Any]) -> FeedItem:
        story_id = data["id"]
        text = data.get("text")
        return FeedItem(
            id=make_item_id(self.name, story_id),
            title=data["title"],
            source=self.name,
            url=data.get("url") or _HN_DISCUSSION_URL.format(story_id),
            summary=clean_text(strip_html(text), 200) if text else None,
            published_at=parse_timestamp(data.get("time"), "s"),
            author=data.get("by"),
            score=data.get("score"),
            comment_count=data.get("descendants"),
        )
