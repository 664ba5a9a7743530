"""RSS/Atom feed source adapter for user-supplied feed URLs."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import feedparser

from trendfeed.ingestion.adapter import DEFAULT_USER_AGENT, SourceAdapter
from trendfeed.ingestion.feedxml import (
    ensure_array,
    extract_link,
    extract_text,
    parse_xml,
    strip_html,
)
from trendfeed.ingestion.normalize import FeedItem, parse_timestamp
from trendfeed.ingestion.options import DEFAULT_TIME_RANGE, TIME_RANGE_DAYS, RSSOptions

logger = logging.getLogger(__name__)

_ACCEPT = "application/rss+xml, application/xml, text/xml, */*"
_SUMMARY_MAX = 200


def _atom_fields(entry: dict[str, Any]) -> tuple[str, str, str, str]:
    return (
        extract_text(entry.get("title")),
        extract_link(entry.get("link")),
        strip_html(extract_text(entry.get("summary") or entry.get("content"))),
        extract_text(entry.get("published") or entry.get("updated")),
    )


def _rss_fields(item: dict[str, Any]) -> tuple[str, str, str, str]:
    return (
        extract_text(item.get("title")),
        extract_link(item.get("link")),
        strip_html(extract_text(item.get("description"))),
        extract_text(item.get("pubDate") or item.get("dc:date")),
    )


def feed_entries(parsed: dict[str, Any]) -> tuple[bool, list[Any]]:
    """Return (is_atom, entries) for a parsed RSS 2.0 or Atom document."""
    if "feed" in parsed:
        feed = parsed["feed"]
        return True, ensure_array(feed.get("entry")) if isinstance(feed, dict) else []
    rss = parsed.get("rss")
    channel = rss.get("channel") if isinstance(rss, dict) else None
    return False, ensure_array(channel.get("item")) if isinstance(channel, dict) else []


def _lenient_fields(content: str) -> list[tuple[str, str, str, str]]:
    feed = feedparser.parse(content)
    if feed.bozo and not feed.entries:
        raise ValueError(f"Unparseable feed: {feed.get('bozo_exception')}")
    return [
        (
            entry.get("title", ""),
            entry.get("link", ""),
            strip_html(entry.get("summary", "") or entry.get("description", "")),
            entry.get("published", "") or entry.get("updated", ""),
        )
        for entry in feed.entries
    ]


def entry_fields(content: str, url: str = "") -> list[tuple[str, str, str, str]]:
    """Return (title, link, description, pub_date) per feed entry.

    Documents the strict XML parser rejects, such as feeds using HTML
    entities like ``&nbsp;``, are re-read with feedparser. Raises ValueError
    when feedparser finds no entries in such a document either.
    """
    try:
        parsed = parse_xml(content)
    except ValueError as exc:
        logger.warning("Strict parse failed for %s (%s), retrying leniently", url, exc)
        return _lenient_fields(content)
    is_atom, entries = feed_entries(parsed)
    fields = _atom_fields if is_atom else _rss_fields
    return [fields(entry) for entry in entries if isinstance(entry, dict)]


class RSSAdapter(SourceAdapter):
    """Adapter for RSS 2.0 and Atom feeds.

    Items older than the configured time range are dropped. An item whose
    date is missing or unparseable is stamped with the fetch time and kept.
    """

    options_type = RSSOptions
    default_count = 100

    @property
    def name(self) -> str:
        return "RSS"

    async def _fetch(self, options: RSSOptions) -> list[FeedItem]:
        if not options.url:
            logger.error("RSS source requires a URL")
            return []

        days = TIME_RANGE_DAYS.get(options.time_range)
        if days is None:
            logger.warning(
                "Unknown time range %r for %s, using %s",
                options.time_range, options.url, DEFAULT_TIME_RANGE,
            )
            days = TIME_RANGE_DAYS[DEFAULT_TIME_RANGE]
        now = datetime.now(timezone.utc)
        cutoff = now - timedelta(days=days)

        resp = await self.safe_get(
            options.url,
            headers={"Accept": _ACCEPT, "User-Agent": DEFAULT_USER_AGENT},
        )
        entries = entry_fields(resp.text, options.url)

        items: list[FeedItem] = []
        for index, (title, link, description, pub_date) in enumerate(
            entries[: options.count]
        ):
            published_at = parse_timestamp(pub_date)
            if published_at is None:
                if pub_date:
                    logger.warning(
                        "[RSS] Invalid date %r in %s, falling back to now",
                        pub_date, options.url,
                    )
                published = now
            else:
                published = datetime.fromisoformat(published_at)

            if published < cutoff:
                continue

            items.append(
                FeedItem(
                    id=f"rss-{options.url}-{index}",
                    title=title,
                    source=self.name,
                    source_name=options.source_name,
                    url=link,
                    summary=description[:_SUMMARY_MAX],
                    published_at=published.isoformat(),
                )
            )

        logger.info(
            "Fetched %d items from %s", len(items), options.source_name or options.url,
        )
        return items
