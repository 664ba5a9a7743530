"""Freshness policy — decides how aggressively to refresh cached feed data.

Three tiers bound upstream load while keeping the feed from going stale:

* data younger than ``SILENT_THRESHOLD`` is served as-is (IMMEDIATE);
* data up to ``FORCE_THRESHOLD`` old is served while a refresh runs in the
  background (SILENT);
* older data, missing metadata, or data from a previous local calendar day
  triggers a blocking refresh (FORCE).
"""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

SILENT_THRESHOLD_MS = 30 * 60 * 1000
FORCE_THRESHOLD_MS = 6 * 60 * 60 * 1000


class RefreshStrategy(str, enum.Enum):
    IMMEDIATE = "immediate"
    SILENT = "silent"
    FORCE = "force"


def now_ms() -> int:
    return int(time.time() * 1000)


def today_string(now: datetime | None = None) -> str:
    """Local calendar date as YYYY-MM-DD."""
    return (now or datetime.now()).strftime("%Y-%m-%d")


@dataclass(frozen=True)
class DataMetadata:
    """When the aggregate feed was last refreshed."""

    last_update_time: int
    last_update_date: str

    @classmethod
    def now(cls) -> DataMetadata:
        return cls(last_update_time=now_ms(), last_update_date=today_string())

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastUpdateTime": self.last_update_time,
            "lastUpdateDate": self.last_update_date,
        }

    @classmethod
    def from_dict(cls, data: Any) -> DataMetadata | None:
        """Return None for anything without a usable timestamp."""
        if not isinstance(data, dict):
            return None
        timestamp = data.get("lastUpdateTime")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            return None
        return cls(
            last_update_time=int(timestamp),
            last_update_date=str(data.get("lastUpdateDate") or ""),
        )


def decide(metadata: DataMetadata | None, now: datetime | None = None) -> RefreshStrategy:
    """Pick a refresh strategy for the stored metadata.

    A different local calendar date always forces, whatever the age.
    """
    if metadata is None or not metadata.last_update_time:
        return RefreshStrategy.FORCE

    now = now or datetime.now()
    if metadata.last_update_date != today_string(now):
        return RefreshStrategy.FORCE

    age = int(now.timestamp() * 1000) - metadata.last_update_time
    if age > FORCE_THRESHOLD_MS:
        return RefreshStrategy.FORCE
    if age > SILENT_THRESHOLD_MS:
        return RefreshStrategy.SILENT
    return RefreshStrategy.IMMEDIATE
