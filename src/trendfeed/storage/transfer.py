"""Export and import of the aggregate state (config plus cached feed items)."""

from __future__ import annotations

import csv
import io
import json
import logging
from typing import Any

from trendfeed.ingestion.normalize import FeedItem
from trendfeed.settings import AppConfig
from trendfeed.storage.state import CONFIG_KEY, FEEDS_KEY, FeedState

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "csv")
CSV_COLUMNS = ("id", "title", "source", "url", "summary", "publishedAt", "tags", "aiSummary")


def _csv_row(item: FeedItem) -> list[str]:
    return [
        item.id,
        item.title,
        item.source,
        item.url,
        item.summary or "",
        item.published_at or "",
        ",".join(item.tags or []),
        item.ai_summary or "",
    ]


def items_to_csv(items: list[FeedItem]) -> str:
    """Render items as RFC 4180 CSV with a fixed header.

    Fields containing a quote, comma or line break are quoted, with embedded
    quotes doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    writer.writerows(_csv_row(item) for item in items)
    return buffer.getvalue().rstrip("\n")


async def export_data(state: FeedState, fmt: str) -> str:
    """Serialize config and feeds. Raises ValueError on an unknown format."""
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}")

    feeds = await state.get_feeds()
    if fmt == "csv":
        return items_to_csv(feeds)

    config = await state.get_config()
    return json.dumps(
        {"config": config.to_dict(), "feeds": [item.to_dict() for item in feeds]},
        indent=2,
        ensure_ascii=False,
    )


async def import_data(state: FeedState, text: str, fmt: str) -> bool:
    """Apply a JSON export wholesale.

    Everything is validated before anything is written, and config and feeds
    are written together, so a failed import leaves the stored state as it
    was. Only JSON is importable.
    """
    if fmt != "json":
        logger.warning("Import format %r is not supported", fmt)
        return False

    try:
        imported = json.loads(text)
        if not isinstance(imported, dict):
            raise TypeError("Import payload must be a JSON object")

        updates: dict[str, Any] = {}
        if imported.get("config") is not None:
            updates[CONFIG_KEY] = AppConfig.from_dict(imported["config"]).to_dict()
        if imported.get("feeds") is not None:
            feeds = imported["feeds"]
            if not isinstance(feeds, list):
                raise TypeError("feeds must be a list")
            updates[FEEDS_KEY] = [FeedItem.from_dict(entry).to_dict() for entry in feeds]
    except (ValueError, KeyError, TypeError, AttributeError):
        logger.exception("Import failed")
        return False

    if updates:
        await state.store.set(updates)
    logger.info("Imported %s", ", ".join(updates) or "nothing")
    return True
