"""arXiv source adapter — newest submissions matching a search query."""

from __future__ import annotations

import logging
from typing import Any

from trendfeed.ingestion.adapter import SourceAdapter
from trendfeed.ingestion.feedxml import ensure_array, extract_text, parse_xml
from trendfeed.ingestion.normalize import FeedItem, clean_text, make_item_id, parse_timestamp
from trendfeed.ingestion.options import ArxivOptions

logger = logging.getLogger(__name__)

_ARXIV_API_URL = "http://export.arxiv.org/api/query"


class ArxivAdapter(SourceAdapter):
    """Adapter for the arXiv Atom search API."""

    options_type = ArxivOptions

    @property
    def name(self) -> str:
        return "ArXiv"

    async def _fetch(self, options: ArxivOptions) -> list[FeedItem]:
        resp = await self.safe_get(
            _ARXIV_API_URL,
            params={
                "search_query": options.query,
                "start": 0,
                "max_results": options.count,
                "sortBy": "submittedDate",
                "sortOrder": "descending",
            },
        )
        parsed = parse_xml(resp.text)
        feed = parsed.get("feed") or {}
        entries = ensure_array(feed.get("entry")) if isinstance(feed, dict) else []

        items = [self._to_item(entry) for entry in entries if isinstance(entry, dict)]
        logger.info("Fetched %d items from arXiv", len(items))
        return items

    def _to_item(self, entry: dict[str, Any]) -> FeedItem:
        entry_url = extract_text(entry.get("id"))
        arxiv_id = entry_url.rstrip("/").rsplit("/", 1)[-1] or entry_url

        categories = [
            cat.get("@_term", "")
            for cat in ensure_array(entry.get("category"))
            if isinstance(cat, dict)
        ]
        authors = [
            extract_text(author.get("name"))
            for author in ensure_array(entry.get("author"))
            if isinstance(author, dict)
        ]

        return FeedItem(
            id=make_item_id(self.name, arxiv_id),
            title=clean_text(extract_text(entry.get("title"))),
            source=self.name,
            url=entry_url,
            summary=clean_text(extract_text(entry.get("summary")), 300) or None,
            published_at=parse_timestamp(extract_text(entry.get("published"))),
            tags=[cat.rsplit(".", 1)[-1] for cat in categories if cat],
            author=", ".join(name for name in authors if name) or None,
        )
