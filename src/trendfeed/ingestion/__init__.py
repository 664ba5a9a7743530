"""Ingestion — source adapters, normalization, and the source registry."""

from __future__ import annotations

import httpx

from trendfeed.ingestion.arxiv_adapter import ArxivAdapter
from trendfeed.ingestion.devto_adapter import DevToAdapter
from trendfeed.ingestion.echojs_adapter import EchoJSAdapter
from trendfeed.ingestion.github_adapter import GitHubTrendingAdapter
from trendfeed.ingestion.hn_adapter import HackerNewsAdapter
from trendfeed.ingestion.producthunt_adapter import ProductHuntAdapter
from trendfeed.ingestion.reddit_adapter import RedditAdapter
from trendfeed.ingestion.registry import SourceRegistry
from trendfeed.ingestion.rss_adapter import RSSAdapter

ADAPTER_CLASSES = (
    GitHubTrendingAdapter,
    HackerNewsAdapter,
    ArxivAdapter,
    DevToAdapter,
    RedditAdapter,
    ProductHuntAdapter,
    EchoJSAdapter,
    RSSAdapter,
)


def build_registry(client: httpx.AsyncClient) -> SourceRegistry:
    """Create a registry holding one instance of every known adapter."""
    registry = SourceRegistry()
    for cls in ADAPTER_CLASSES:
        registry.register(cls(client))
    return registry


__all__ = ["ADAPTER_CLASSES", "SourceRegistry", "build_registry"]
