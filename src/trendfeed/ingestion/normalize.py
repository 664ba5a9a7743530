"""FeedItem model and the field coercions adapters share."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

SOURCE_TYPES = frozenset({
    "GitHub", "HackerNews", "ArXiv", "DevTo", "Reddit",
    "ProductHunt", "EchoJS", "RSS", "Custom",
})

_WHITESPACE_RE = re.compile(r"\s+")
_INTEGER_RE = re.compile(r"^-?\d+$")

# FeedItem attribute -> serialized key
_FIELD_KEYS = {
    "id": "id",
    "title": "title",
    "source": "source",
    "source_name": "sourceName",
    "url": "url",
    "summary": "summary",
    "published_at": "publishedAt",
    "tags": "tags",
    "score": "score",
    "upvotes": "upvotes",
    "comment_count": "commentCount",
    "author": "author",
    "is_pinned": "isPinned",
    "ai_summary": "aiSummary",
}


@dataclass(frozen=True)
class FeedItem:
    """Normalized content unit produced by every adapter."""

    id: str
    title: str
    source: str
    url: str = ""
    source_name: str | None = None
    summary: str | None = None
    published_at: str | None = None
    tags: list[str] | None = field(default=None, hash=False)
    score: int | None = None
    upvotes: int | None = None
    comment_count: int | None = None
    author: str | None = None
    is_pinned: bool = False
    ai_summary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys, omitting unset optional fields."""
        data: dict[str, Any] = {}
        for attr, key in _FIELD_KEYS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            data[key] = list(value) if attr == "tags" else value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FeedItem:
        """Build a FeedItem from its serialized form.

        Raises KeyError if id, title or source is missing.
        """
        kwargs = {
            attr: data[key]
            for attr, key in _FIELD_KEYS.items()
            if key in data and data[key] is not None
        }
        for required in ("id", "title", "source"):
            if required not in kwargs:
                raise KeyError(required)
        kwargs.setdefault("url", "")
        if "tags" in kwargs:
            kwargs["tags"] = [str(tag) for tag in kwargs["tags"]]
        kwargs["is_pinned"] = bool(kwargs.get("is_pinned", False))
        return cls(**kwargs)

    def sort_timestamp(self) -> float:
        """Epoch seconds of published_at, 0.0 when missing or unparseable."""
        if not self.published_at:
            return 0.0
        try:
            dt = datetime.fromisoformat(self.published_at)
        except ValueError:
            return 0.0
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.timestamp()


def make_item_id(source_name: str, local_id: str | int) -> str:
    """Build a stable item id: ``<lowercased source name>-<local id>``."""
    return f"{source_name.lower()}-{local_id}"


def clean_text(text: str | None, max_length: int | None = None) -> str:
    """Collapse whitespace and optionally truncate with an ellipsis."""
    if not text:
        return ""
    cleaned = _WHITESPACE_RE.sub(" ", text).strip()
    if max_length and len(cleaned) > max_length:
        cleaned = cleaned[:max_length] + "..."
    return cleaned


def _from_epoch(value: float, unit: str) -> datetime:
    seconds = value if unit == "s" else value / 1000
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _parse_string(value: str, unit: str) -> datetime | None:
    text = value.strip()
    if not text:
        return None
    if _INTEGER_RE.match(text):
        return _from_epoch(int(text), unit)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text)
    except (ValueError, TypeError, IndexError):
        return None


def parse_timestamp(value: Any, unit: str = "ms") -> str | None:
    """Coerce a provider timestamp to a UTC ISO-8601 string.

    Accepts epoch seconds or milliseconds (``unit`` is ``"s"`` or ``"ms"``,
    applied to numbers and numeric strings), ISO-8601 and RFC-2822 strings,
    and datetimes. Returns None for absent or unparseable input.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, datetime):
            dt = value
        elif isinstance(value, (int, float)):
            dt = _from_epoch(value, unit)
        elif isinstance(value, str):
            dt = _parse_string(value, unit)
        else:
            return None
    except (ValueError, OverflowError, OSError):
        return None
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def to_int(value: Any) -> int | None:
    """Coerce a count that may arrive as a string. None when absent or invalid."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
