"""Dev.to source adapter — top community articles."""

from __future__ import annotations

import logging
from typing import Any

from trendfeed.ingestion.adapter import SourceAdapter
from trendfeed.ingestion.normalize import FeedItem, clean_text, make_item_id, parse_timestamp
from trendfeed.ingestion.options import FetchOptions

logger = logging.getLogger(__name__)

_DEVTO_ARTICLES_URL = "https://dev.to/api/articles"


class DevToAdapter(SourceAdapter):
    """Adapter for Dev.to top articles."""

    @property
    def name(self) -> str:
        return "DevTo"

    async def _fetch(self, options: FetchOptions) -> list[FeedItem]:
        resp = await self.safe_get(
            _DEVTO_ARTICLES_URL,
            params={"top": 1, "per_page": options.count},
        )
        items: list[FeedItem] = []
        for article in resp.json():
            if not isinstance(article, dict) or article.get("id") in (None, ""):
                logger.warning("Skipping Dev.to article without an id: %r", article)
                continue
            items.append(self._to_item(article))
        logger.info("Fetched %d items from Dev.to", len(items))
        return items

    def _to_item(self, article: dict[str, Any]) -> FeedItem:
        return FeedItem(
            id=make_item_id(self.name, article["id"]),
            title=article.get("title") or "",
            source=self.name,
            url=article.get("url") or "",
            summary=clean_text(article.get("description"), 200) or None,
            published_at=parse_timestamp(article.get("published_at")),
            tags=list(article.get("tag_list") or []),
            author=(article.get("user") or {}).get("name"),
            score=article.get("public_reactions_count"),
            comment_count=article.get("comments_count"),
        )
