"""Enrichment prompt templates and response parsing."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field

CATEGORIES = ("AI", "Development", "News", "Research", "Product", "Tutorial", "Other")
DEFAULT_CATEGORY = "Other"
MAX_TAGS = 5

SUMMARY_SYSTEM_PROMPT = """\
You write short, factual summaries of technical content for a developer news feed.
Return only the summary text, without any prefix, heading, or formatting marks."""

TAGS_SYSTEM_PROMPT = """\
You label technical content with topical tags and one category.
Return only JSON, with no other text."""

RECOMMEND_SYSTEM_PROMPT = """\
You pick the most valuable items from a developer news feed.
Return only a JSON array of index numbers, with no other text."""

_SUMMARY_TEMPLATE = """\
Write a concise summary (50-100 words) of the following content, highlighting \
its key information and value.

Title: {title}
Source: {source}
Link: {url}
{extra}
Requirements:
1. Write in {language}.
2. Be concise and lead with the core value.
3. For a code repository, explain what it does and what stands out.
4. For a paper, state the research contribution.
5. For an article, state the main argument."""

_TAGS_TEMPLATE = """\
Generate 3-5 relevant tags and exactly one category for the following content.

Content:
{content}

Category options (choose exactly one):
- AI: AI, machine learning, deep learning
- Development: programming, developer tools, frameworks
- News: tech news, industry updates
- Research: academic research, papers, experiments
- Product: product launches, tool recommendations
- Tutorial: tutorials, guides, documentation
- Other: anything else

Requirements:
1. Write the tags in {language}.
2. Keep each tag to 1-3 words, specific and useful.
3. Tags should reflect the core value of the content.

Return format (JSON):
{{"tags": ["tag1", "tag2", "tag3"], "category": "AI"}}"""

_RECOMMEND_TEMPLATE = """\
From the following trending items, pick the {pick} most worth attention for AI \
developers and software engineers. Return their index numbers (1-{total}).

{items}

Return format: a JSON array such as ["1", "5", "8"]. Return only the JSON array."""

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)(?:\s*```|$)")
_TAGS_RE = re.compile(r"""["']tags["']\s*:\s*\[(.*?)\]""", re.DOTALL)
_QUOTED_RE = re.compile(r"""["']([^"']+)["']""")
_CATEGORY_RE = re.compile(r"""["']category["']\s*:\s*["']([^"']+)["']""")


@dataclass(frozen=True)
class TagResult:
    tags: list[str] = field(default_factory=list)
    category: str = DEFAULT_CATEGORY

    def to_dict(self) -> dict:
        return {"tags": list(self.tags), "category": self.category}

    @classmethod
    def from_dict(cls, data: dict) -> TagResult:
        return cls(tags=[str(tag) for tag in data["tags"]], category=str(data["category"]))


def format_summary_prompt(
    *, title: str, source: str, url: str, summary: str | None,
    tags: list[str] | None, language: str,
) -> str:
    extra = ""
    if summary:
        extra += f"Original summary: {summary[:500]}\n"
    if tags:
        extra += f"Tags: {', '.join(tags)}\n"
    return _SUMMARY_TEMPLATE.format(
        title=title, source=source, url=url, extra=extra, language=language,
    )


def format_tags_prompt(content: str, language: str) -> str:
    return _TAGS_TEMPLATE.format(content=content, language=language)


def format_recommend_prompt(titles: list[tuple[str, str]], pick: int) -> str:
    lines = "\n".join(
        f"{index}. {title} - {source}" for index, (title, source) in enumerate(titles, 1)
    )
    return _RECOMMEND_TEMPLATE.format(pick=pick, total=len(titles), items=lines)


def _clean_json(raw: str) -> str:
    """Strip code fences and anything outside the outermost braces."""
    text = raw.strip()
    match = _FENCE_RE.search(text)
    if match:
        text = match.group(1).strip()
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        text = text[start:end + 1]
    return text


def _valid_category(value: str) -> str:
    return value if value in CATEGORIES else DEFAULT_CATEGORY


def _extract_tags_from_text(text: str) -> TagResult:
    tags: list[str] = []
    match = _TAGS_RE.search(text)
    if match:
        tags = _QUOTED_RE.findall(match.group(1))
    category_match = _CATEGORY_RE.search(text)
    category = _valid_category(category_match.group(1)) if category_match else DEFAULT_CATEGORY
    return TagResult(tags=tags[:MAX_TAGS], category=category)


def parse_tags_response(raw: str) -> TagResult:
    """Parse the model's tag JSON.

    Falls back to pattern extraction when the JSON is truncated or
    malformed. Unknown categories become ``Other``.
    """
    try:
        data = json.loads(_clean_json(raw))
    except json.JSONDecodeError:
        return _extract_tags_from_text(raw)

    if (
        isinstance(data, dict)
        and isinstance(data.get("tags"), list)
        and isinstance(data.get("category"), str)
    ):
        tags = [str(tag).strip() for tag in data["tags"] if str(tag).strip()]
        return TagResult(tags=tags[:MAX_TAGS], category=_valid_category(data["category"]))
    return _extract_tags_from_text(raw)


def parse_recommend_response(raw: str, total: int) -> list[int]:
    """Return zero-based indices picked by the model. Raises ValueError."""
    data = json.loads(raw.strip())
    if not isinstance(data, list):
        raise ValueError("Expected a JSON array")
    indices = []
    for entry in data:
        index = int(entry) - 1
        if 0 <= index < total and index not in indices:
            indices.append(index)
    return indices
