"""Typed fetch options, one dataclass per provider family."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_ARXIV_QUERY = "cat:cs.AI OR cat:cs.LG OR cat:cs.CL"

TIME_RANGE_DAYS = {"1d": 1, "3d": 3, "7d": 7, "30d": 30}
DEFAULT_TIME_RANGE = "7d"


@dataclass(frozen=True)
class FetchOptions:
    """Options every adapter understands. ``count=None`` means adapter default."""

    count: int | None = None


@dataclass(frozen=True)
class HackerNewsOptions(FetchOptions):
    min_score: int = 100


@dataclass(frozen=True)
class ArxivOptions(FetchOptions):
    query: str = DEFAULT_ARXIV_QUERY


@dataclass(frozen=True)
class RSSOptions(FetchOptions):
    url: str = ""
    source_name: str | None = None
    time_range: str = DEFAULT_TIME_RANGE
