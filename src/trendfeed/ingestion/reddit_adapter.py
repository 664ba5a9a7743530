"""Reddit source adapter — hot posts from r/MachineLearning."""

from __future__ import annotations

import logging

from trendfeed.ingestion.adapter import DEFAULT_USER_AGENT, SourceAdapter
from trendfeed.ingestion.normalize import FeedItem, clean_text, make_item_id, parse_timestamp
from trendfeed.ingestion.options import FetchOptions

logger = logging.getLogger(__name__)

_REDDIT_HOT_URL = "https://www.reddit.com/r/MachineLearning/hot.json"
_REDDIT_BASE = "https://www.reddit.com"
_TOPIC_TAG = "Machine Learning"


class RedditAdapter(SourceAdapter):
    """Adapter for the r/MachineLearning hot listing."""

    @property
    def name(self) -> str:
        return "Reddit"

    async def _fetch(self, options: FetchOptions) -> list[FeedItem]:
        resp = await self.safe_get(
            _REDDIT_HOT_URL,
            headers={"User-Agent": DEFAULT_USER_AGENT},
        )
        children = resp.json()["data"]["children"]

        posts = [child.get("data", {}) for child in children]
        # Self posts without a body carry nothing beyond the title.
        posts = [post for post in posts if not post.get("is_self") or post.get("selftext")]

        items: list[FeedItem] = []
        for post in posts[: options.count]:
            selftext = post.get("selftext")
            if post.get("is_self"):
                url = f"{_REDDIT_BASE}{post.get('permalink', '')}"
            else:
                url = post.get("url") or ""
            items.append(
                FeedItem(
                    id=make_item_id(self.name, post.get("id", "")),
                    title=post.get("title") or "",
                    source=self.name,
                    url=url,
                    summary=clean_text(selftext, 300) if selftext else None,
                    published_at=parse_timestamp(post.get("created_utc"), "s"),
                    author=post.get("author"),
                    score=post.get("score"),
                    comment_count=post.get("num_comments"),
                    tags=[_TOPIC_TAG],
                )
            )

        logger.info("Fetched %d items from Reddit", len(items))
        return items
