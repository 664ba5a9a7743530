"""EchoJS source adapter — the top leaderboard."""

from __future__ import annotations

import logging
from typing import Any

from trendfeed.ingestion.adapter import SourceAdapter
from trendfeed.ingestion.normalize import FeedItem, make_item_id, parse_timestamp, to_int
from trendfeed.ingestion.options import FetchOptions

logger = logging.getLogger(__name__)

_ECHOJS_TOP_URL = "https://www.echojs.com/api/getnews/top/0/{}"


class EchoJSAdapter(SourceAdapter):
    """Adapter for EchoJS top news."""

    @property
    def name(self) -> str:
        return "EchoJS"

    async def _fetch(self, options: FetchOptions) -> list[FeedItem]:
        resp = await self.safe_get(_ECHOJS_TOP_URL.format(options.count))
        news = resp.json()["news"]

        items: list[FeedItem] = []
        for entry in news[: options.count]:
            if not isinstance(entry, dict) or entry.get("id") in (None, ""):
                logger.warning("Skipping EchoJS entry without an id: %r", entry)
                continue
            items.append(self._to_item(entry))
        logger.info("Fetched %d items from EchoJS", len(items))
        return items

    def _to_item(self, entry: dict[str, Any]) -> FeedItem:
        upvotes = to_int(entry.get("upvotes"))
        return FeedItem(
            id=make_item_id(self.name, entry["id"]),
            title=entry.get("title") or "",
            source=self.name,
            url=entry.get("url") or "",
            summary=entry.get("source") or "EchoJS",
            published_at=parse_timestamp(entry.get("atime"), "s"),
            score=upvotes,
            upvotes=upvotes,
            comment_count=to_int(entry.get("comments")),
        )
