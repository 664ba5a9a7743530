"""Pydantic v2 request and response models for the trendfeed web API.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from trendfeed.aggregation.freshness import DataMetadata
from trendfeed.ingestion.normalize import FeedItem


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------
class FeedItemModel(CamelModel):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    source: str = Field(min_length=1)
    url: str = ""
    source_name: str | None = None
    summary: str | None = None
    published_at: str | None = None
    tags: list[str] | None = None
    score: int | None = None
    upvotes: int | None = None
    comment_count: int | None = None
    author: str | None = None
    is_pinned: bool = False
    ai_summary: str | None = None

    @classmethod
    def from_item(cls, item: FeedItem) -> FeedItemModel:
        return cls.model_validate(item.to_dict())

    def to_item(self) -> FeedItem:
        return FeedItem.from_dict(self.model_dump(by_alias=True, exclude_none=True))


class FeedsResponse(CamelModel):
    config: dict | None
    feeds: list[FeedItemModel]
    last_update: int


class MetadataModel(CamelModel):
    last_update_time: int
    last_update_date: str

    @classmethod
    def from_metadata(cls, metadata: DataMetadata | None) -> MetadataModel | None:
        if metadata is None:
            return None
        return cls(
            last_update_time=metadata.last_update_time,
            last_update_date=metadata.last_update_date,
        )


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------
class FreshnessResponse(CamelModel):
    strategy: str
    metadata: MetadataModel | None


class RefreshResponse(CamelModel):
    success: bool


class SmartRefreshResponse(CamelModel):
    strategy: str
    started: bool
    metadata: MetadataModel | None


class SourcesResponse(CamelModel):
    sources: list[str]


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------
class SummaryRequest(CamelModel):
    item: FeedItemModel
    skip_cache: bool = False


class SummaryResponse(CamelModel):
    success: bool
    summary: str | None = None
    error: str | None = None
    error_type: str | None = None


class TagsRequest(CamelModel):
    content: str = Field(min_length=1)
    skip_cache: bool = False


class TagsResponse(CamelModel):
    success: bool
    tags: list[str] = Field(default_factory=list)
    category: str | None = None
    error: str | None = None
    error_type: str | None = None


class RecommendationsResponse(CamelModel):
    items: list[FeedItemModel]


# ---------------------------------------------------------------------------
# Transfer
# ---------------------------------------------------------------------------
class ImportRequest(CamelModel):
    data: str
    format: str = "json"
