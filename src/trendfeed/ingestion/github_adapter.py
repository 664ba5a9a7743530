"""GitHub Trending source adapter — scrapes the daily trending page."""

from __future__ import annotations

import logging

from trendfeed.ingestion.adapter import DEFAULT_USER_AGENT, SourceAdapter
from trendfeed.ingestion.normalize import FeedItem, make_item_id
from trendfeed.ingestion.options import FetchOptions
from trendfeed.ingestion.trending import TrendingRepo, parse_trending_html

logger = logging.getLogger(__name__)

_TRENDING_URL = "https://github.com/trending?since=daily"
_TRENDING_TAG = "GitHub Trending"


class GitHubTrendingAdapter(SourceAdapter):
    """Adapter for GitHub trending repositories.

    GitHub has no trending API, so the HTML page is parsed. Trending rows
    carry no usable date; ``published_at`` stays unset.
    """

    @property
    def name(self) -> str:
        return "GitHub"

    async def _fetch(self, options: FetchOptions) -> list[FeedItem]:
        resp = await self.safe_get(
            _TRENDING_URL,
            headers={"User-Agent": DEFAULT_USER_AGENT},
        )
        repos = parse_trending_html(resp.text, limit=options.count)
        items = [self._to_item(repo) for repo in repos]
        logger.info("Fetched %d items from GitHub Trending", len(items))
        return items

    def _to_item(self, repo: TrendingRepo) -> FeedItem:
        return FeedItem(
            id=make_item_id(self.name, f"{repo.owner}-{repo.name}"),
            title=repo.full_name,
            source=self.name,
            url=f"https://github.com/{repo.full_name}",
            summary=repo.description or f"{repo.full_name} - {repo.language}",
            tags=[repo.language, _TRENDING_TAG] if repo.language else [_TRENDING_TAG],
            score=repo.stars,
            upvotes=repo.stars,
            author=repo.owner,
        )
