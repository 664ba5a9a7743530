"""Tests for trendfeed.ingestion.github_adapter — GitHub Trending adapter."""

from __future__ import annotations

import asyncio

import httpx

from trendfeed.ingestion.github_adapter import GitHubTrendingAdapter
from trendfeed.ingestion.options import FetchOptions


def _row(owner, name, stars, language="Python", description="Cool project"):
    lang = f'<span itemprop="programmingLanguage">{language}</span>' if language else ""
    return f"""
    <article class="Box-row">
      <h2><a href="/{owner}/{name}">{owner} / {name}</a></h2>
      <p class="col-9">{description}</p>
      {lang}
      <a href="/{owner}/{name}/stargazers">{stars}</a>
    </article>
    """


TRENDING_HTML = (
    "<html><body>"
    + _row("karpathy", "nanoGPT", "32.1k")
    + _row("torvalds", "linux", "180,000", language="C")
    + _row("someone", "notes", "12", language="", description="")
    + "</body></html>"
)


def _fetch(handler, options=None):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await GitHubTrendingAdapter(client).fetch(options)
    return asyncio.run(run())


class TestGitHubTrendingAdapter:
    def test_maps_repos(self):
        result = _fetch(lambda request: httpx.Response(200, text=TRENDING_HTML))

        assert [item.title for item in result] == ["karpathy/nanoGPT", "torvalds/linux", "someone/notes"]
        first = result[0]
        assert first.id == "github-karpathy-nanoGPT"
        assert first.url == "https://github.com/karpathy/nanoGPT"
        assert first.summary == "Cool project"
        assert first.tags == ["Python", "GitHub Trending"]
        assert first.score == 32100
        assert first.upvotes == 32100
        assert first.author == "karpathy"
        assert first.published_at is None

    def test_repo_without_language_or_description(self):
        item = _fetch(lambda request: httpx.Response(200, text=TRENDING_HTML))[2]
        assert item.tags == ["GitHub Trending"]
        assert item.summary.startswith("someone/notes")

    def test_caps_at_count(self):
        result = _fetch(lambda request: httpx.Response(200, text=TRENDING_HTML), FetchOptions(count=2))
        assert len(result) == 2

    def test_requests_daily_page_with_user_agent(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["ua"] = request.headers.get("user-agent", "")
            return httpx.Response(200, text=TRENDING_HTML)

        _fetch(handler)
        assert seen["url"] == "https://github.com/trending?since=daily"
        assert seen["ua"].startswith("Mozilla/5.0")

    def test_blocked_returns_empty(self):
        assert _fetch(lambda request: httpx.Response(403)) == []
