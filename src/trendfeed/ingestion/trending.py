"""GitHub Trending page parsing."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag

_COUNT_RE = re.compile(r"([\d,.]+[km]?)", re.IGNORECASE)
_EXCLUDED_HREF_PARTS = ("/stargazers", "/forks")


@dataclass(frozen=True)
class TrendingRepo:
    """One row of a trending-repositories page."""

    owner: str
    name: str
    description: str
    language: str
    stars: int

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


def parse_count(text: str | None) -> int:
    """Parse a human-formatted count such as ``12,345``, ``1.5k`` or ``2M``."""
    if not text:
        return 0
    match = _COUNT_RE.search(text)
    if not match:
        return 0
    cleaned = match.group(1).replace(",", "").lower()
    multiplier = 1
    if cleaned.endswith("k"):
        multiplier = 1_000
        cleaned = cleaned[:-1]
    elif cleaned.endswith("m"):
        multiplier = 1_000_000
        cleaned = cleaned[:-1]
    try:
        value = float(cleaned)
    except ValueError:
        return 0
    return int(math.floor(value * multiplier + 0.5))


def _repo_path(href: str) -> tuple[str, str] | None:
    """Return (owner, repo) for a two-segment repository path, else None."""
    if not href.startswith("/") or href.startswith("/sponsors/"):
        return None
    if any(part in href for part in _EXCLUDED_HREF_PARTS):
        return None
    parts = [part for part in href.split("/") if part]
    if len(parts) != 2:
        return None
    return parts[0], parts[1]


def _find_repo(row: Tag) -> tuple[str, str] | None:
    anchors = row.select("h2 a[href]") + row.select("a[href]")
    for anchor in anchors:
        path = _repo_path(str(anchor.get("href", "")))
        if path:
            return path
    return None


def _first_text(row: Tag, selector: str) -> str:
    element = row.select_one(selector)
    return element.get_text(" ", strip=True) if element else ""


def _parse_stars(row: Tag) -> int:
    star_link = row.select_one('a[href$="/stargazers"]')
    if star_link is not None:
        count = parse_count(star_link.get_text(strip=True))
        if count:
            return count
    star_icon = row.select_one(".octicon-star")
    if star_icon is not None and star_icon.parent is not None:
        return parse_count(star_icon.parent.get_text(strip=True))
    return 0


def parse_trending_html(html: str, limit: int | None = None) -> list[TrendingRepo]:
    """Extract repositories from a trending page, in page order."""
    soup = BeautifulSoup(html, "html.parser")
    repos: list[TrendingRepo] = []

    for row in soup.select("article.Box-row"):
        if limit is not None and len(repos) >= limit:
            break
        path = _find_repo(row)
        if path is None:
            continue
        owner, name = path
        repos.append(
            TrendingRepo(
                owner=owner,
                name=name,
                description=_first_text(row, "p.col-9, p.my-1"),
                language=_first_text(row, 'span[itemprop="programmingLanguage"]'),
                stars=_parse_stars(row),
            )
        )

    return repos
