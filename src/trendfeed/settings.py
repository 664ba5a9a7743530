"""User-editable application settings: configured sources and feed limits."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from trendfeed.ingestion.normalize import SOURCE_TYPES


@dataclass(frozen=True)
class SourceConfig:
    """One configured provider instance."""

    id: str
    type: str
    name: str
    enabled: bool = True
    url: str | None = None
    category: str = "dev"
    fetch_count: int = 10
    fetch_time_range: str | None = None
    min_score: int | None = None
    is_pinned: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "enabled": self.enabled,
            "category": self.category,
            "fetchCount": self.fetch_count,
            "isPinned": self.is_pinned,
        }
        if self.url is not None:
            data["url"] = self.url
        if self.fetch_time_range is not None:
            data["fetchTimeRange"] = self.fetch_time_range
        if self.min_score is not None:
            data["minScore"] = self.min_score
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SourceConfig:
        """Raises KeyError on missing id/type, ValueError on an unknown type."""
        source_type = data["type"]
        if source_type not in SOURCE_TYPES:
            raise ValueError(f"Unknown source type: {source_type}")
        return cls(
            id=str(data["id"]),
            type=source_type,
            name=data.get("name") or str(data["id"]),
            enabled=bool(data.get("enabled", True)),
            url=data.get("url") or None,
            category=data.get("category", "dev"),
            fetch_count=int(data.get("fetchCount", 10)),
            fetch_time_range=data.get("fetchTimeRange"),
            min_score=data.get("minScore"),
            is_pinned=bool(data.get("isPinned", False)),
        )


def _rss(source_id: str, name: str, url: str, time_range: str, category: str = "ai") -> SourceConfig:
    return SourceConfig(
        id=source_id,
        type="RSS",
        name=name,
        url=url,
        category=category,
        fetch_count=50,
        fetch_time_range=time_range,
    )


DEFAULT_SOURCES: tuple[SourceConfig, ...] = (
    SourceConfig(id="github-trending", type="GitHub", name="GitHub Trending", category="dev"),
    SourceConfig(
        id="hacker-news", type="HackerNews", name="Hacker News",
        category="news", fetch_count=15, min_score=100,
    ),
    SourceConfig(id="arxiv-ai", type="ArXiv", name="ArXiv AI", category="research"),
    SourceConfig(id="dev-to", type="DevTo", name="Dev.to", category="community"),
    SourceConfig(id="reddit-ml", type="Reddit", name="Reddit ML", category="ai"),
    SourceConfig(
        id="product-hunt", type="ProductHunt", name="Product Hunt",
        category="product", fetch_count=5,
    ),
    SourceConfig(id="echo-js", type="EchoJS", name="Echo JS", enabled=False, category="dev"),
    _rss("openai-blog", "OpenAI Blog", "https://openai.com/blog/rss.xml", "7d"),
    _rss("karpathy-blog", "Karpathy Blog", "https://karpathy.github.io/feed.xml", "30d"),
    _rss("lilian-weng", "Lil'Log", "https://lilianweng.github.io/index.xml", "30d"),
    _rss("hugging-face", "Hugging Face", "https://huggingface.co/blog/feed.xml", "7d"),
    _rss("google-ai", "Google AI", "https://blog.google/technology/ai/rss/", "7d", "research"),
    _rss("bair-blog", "BAIR", "https://bair.berkeley.edu/blog/feed.xml", "30d", "research"),
    _rss("the-gradient", "The Gradient", "https://thegradient.pub/rss/", "30d"),
)


@dataclass(frozen=True)
class AppConfig:
    """Settings blob persisted in the key-value store."""

    sources: list[SourceConfig] = field(default_factory=lambda: list(DEFAULT_SOURCES))
    api_base_url: str = ""
    api_key: str = ""
    api_model: str = ""
    theme: str = "light"
    max_items: int = 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "sources": [source.to_dict() for source in self.sources],
            "apiBaseUrl": self.api_base_url,
            "apiKey": self.api_key,
            "apiModel": self.api_model,
            "theme": self.theme,
            "maxItems": self.max_items,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        """Raises KeyError/ValueError/TypeError on a malformed blob."""
        sources = data.get("sources")
        return cls(
            sources=(
                [SourceConfig.from_dict(s) for s in sources]
                if sources is not None
                else list(DEFAULT_SOURCES)
            ),
            api_base_url=data.get("apiBaseUrl") or "",
            api_key=data.get("apiKey") or "",
            api_model=data.get("apiModel") or "",
            theme=data.get("theme") or "light",
            max_items=int(data.get("maxItems", 100)),
        )
