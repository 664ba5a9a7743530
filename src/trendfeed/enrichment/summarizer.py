"""AI enrichment — per-item summaries, topical tags, and picks via the Anthropic API.

Results are cached in the key-value store: summaries under
``ai_summary_<item id>`` for 7 days, tags under ``ai_tags_<content hash>`` for
30 days. Retries on rate limits and server errors are left to the SDK client.
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import anthropic

from trendfeed.config import Config
from trendfeed.enrichment.prompt import (
    RECOMMEND_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    TAGS_SYSTEM_PROMPT,
    TagResult,
    format_recommend_prompt,
    format_summary_prompt,
    format_tags_prompt,
    parse_recommend_response,
    parse_tags_response,
)
from trendfeed.ingestion.normalize import FeedItem
from trendfeed.storage.state import FeedState

logger = logging.getLogger(__name__)

SUMMARY_CACHE_PREFIX = "ai_summary_"
SUMMARY_CACHE_TTL_MS = 7 * 24 * 60 * 60 * 1000
TAGS_CACHE_PREFIX = "ai_tags_"
TAGS_CACHE_TTL_MS = 30 * 24 * 60 * 60 * 1000
RECOMMEND_POOL = 20
RECOMMEND_PICK = 5

StreamCallback = Callable[[str], None]


class EnrichmentNotConfiguredError(Exception):
    """No API key or model is configured for enrichment."""

    def __init__(self) -> None:
        super().__init__("AI API is not configured; set an API key and model in settings")


class EnrichmentError(Exception):
    """Enrichment failed for a reason other than missing configuration."""


@dataclass(frozen=True)
class LLMSettings:
    api_key: str
    model: str
    base_url: str
    max_retries: int
    timeout: int


def _now_ms() -> int:
    return int(time.time() * 1000)


def tags_cache_key(content: str) -> str:
    digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
    return f"{TAGS_CACHE_PREFIX}{digest[:32]}"


def _client(llm: LLMSettings) -> anthropic.AsyncAnthropic:
    """A fresh client, to be used as an async context manager."""
    return anthropic.AsyncAnthropic(
        api_key=llm.api_key,
        base_url=llm.base_url or None,
        max_retries=llm.max_retries,
        timeout=llm.timeout,
    )


async def _call_llm(
    llm: LLMSettings,
    *,
    system_prompt: str,
    user_prompt: str,
    temperature: float,
    max_tokens: int,
) -> str:
    """Call the Anthropic API and return the text response."""
    async with _client(llm) as client:
        message = await client.messages.create(
            model=llm.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
    return message.content[0].text if message.content else ""


async def _stream_llm(
    llm: LLMSettings,
    *,
    system_prompt: str,
    user_prompt: str,
    on_stream: StreamCallback | None,
    max_tokens: int = 1000,
) -> str:
    """Stream a response, passing the cumulative text to ``on_stream``."""
    full_text = ""
    async with _client(llm) as client, client.messages.stream(
        model=llm.model,
        max_tokens=max_tokens,
        temperature=0.7,
        system=system_prompt,
        messages=[{"role": "user", "content": user_prompt}],
    ) as stream:
        async for chunk in stream.text_stream:
            if not chunk:
                continue
            full_text += chunk
            if on_stream is not None:
                on_stream(full_text)
    return full_text


class Enricher:
    """Generates AI summaries and tags, backed by the state cache.

    Key, model and base URL come from the stored app config when set there,
    otherwise from the process config.
    """

    def __init__(self, state: FeedState, settings: Config) -> None:
        self._state = state
        self._settings = settings

    async def llm_settings(self) -> LLMSettings | None:
        """Resolve the effective LLM settings, or None if not configured."""
        app_config = await self._state.get_config()
        api_key = app_config.api_key or self._settings.llm_api_key
        model = app_config.api_model or self._settings.llm_model
        if not api_key or not model:
            return None
        return LLMSettings(
            api_key=api_key,
            model=model,
            base_url=(app_config.api_base_url or self._settings.llm_base_url).rstrip("/"),
            max_retries=self._settings.llm_max_retries,
            timeout=self._settings.llm_timeout_seconds,
        )

    async def _require_settings(self) -> LLMSettings:
        llm = await self.llm_settings()
        if llm is None:
            raise EnrichmentNotConfiguredError()
        return llm

    async def generate_summary(
        self,
        item: FeedItem,
        on_stream: StreamCallback | None = None,
        skip_cache: bool = False,
    ) -> str:
        """Summarize one item.

        Raises EnrichmentNotConfiguredError or EnrichmentError. A cached
        summary is delivered to ``on_stream`` in one call.
        """
        cache_key = f"{SUMMARY_CACHE_PREFIX}{item.id}"
        if not skip_cache:
            cached = await self._state.get_cache(cache_key)
            if (
                isinstance(cached, dict)
                and cached.get("summary")
                and _now_ms() - cached.get("timestamp", 0) < SUMMARY_CACHE_TTL_MS
            ):
                if on_stream is not None:
                    on_stream(cached["summary"])
                return cached["summary"]

        llm = await self._require_settings()
        user_prompt = format_summary_prompt(
            title=item.title,
            source=item.source,
            url=item.url,
            summary=item.summary,
            tags=item.tags,
            language=self._settings.summary_language,
        )
        try:
            response = await _stream_llm(
                llm,
                system_prompt=SUMMARY_SYSTEM_PROMPT,
                user_prompt=user_prompt,
                on_stream=on_stream,
            )
        except anthropic.APIError as exc:
            logger.exception("Summary generation failed for %s", item.id)
            raise EnrichmentError(f"AI summary generation failed: {exc}") from exc

        summary = response.strip()
        if not summary:
            raise EnrichmentError("AI returned an empty summary")

        await self._state.save_cache(cache_key, {"summary": summary, "timestamp": _now_ms()})
        logger.info("Generated summary for %s (%d chars)", item.id, len(summary))
        return summary

    async def generate_tags(self, content: str, skip_cache: bool = False) -> TagResult:
        """Tag free text with 3-5 tags and one category."""
        cache_key = tags_cache_key(content)
        if not skip_cache:
            cached = await self._state.get_cache(cache_key)
            if (
                isinstance(cached, dict)
                and isinstance(cached.get("result"), dict)
                and _now_ms() - cached.get("timestamp", 0) < TAGS_CACHE_TTL_MS
            ):
                try:
                    return TagResult.from_dict(cached["result"])
                except (KeyError, TypeError):
                    logger.warning("Ignoring malformed tags cache entry %s", cache_key)

        llm = await self._require_settings()
        try:
            response = await _call_llm(
                llm,
                system_prompt=TAGS_SYSTEM_PROMPT,
                user_prompt=format_tags_prompt(content, self._settings.summary_language),
                temperature=0.5,
                max_tokens=1000,
            )
        except anthropic.APIError as exc:
            logger.exception("Tag generation failed")
            raise EnrichmentError(f"AI tag generation failed: {exc}") from exc

        if not response.strip():
            raise EnrichmentError("AI returned an empty tag response")

        result = parse_tags_response(response)
        await self._state.save_cache(
            cache_key, {"result": result.to_dict(), "timestamp": _now_ms()}
        )
        return result

    async def recommend(self, items: list[FeedItem], pick: int = RECOMMEND_PICK) -> list[FeedItem]:
        """Pick the items most worth reading from the head of the feed.

        Never raises. Without configuration, or when the model's answer is
        unusable, the first ``pick`` items are returned.
        """
        if not items:
            return []
        fallback = items[:pick]
        llm = await self.llm_settings()
        if llm is None:
            return fallback

        pool = items[:RECOMMEND_POOL]
        try:
            response = await _call_llm(
                llm,
                system_prompt=RECOMMEND_SYSTEM_PROMPT,
                user_prompt=format_recommend_prompt(
                    [(item.title, item.source) for item in pool], pick
                ),
                temperature=0.7,
                max_tokens=500,
            )
            indices = parse_recommend_response(response, len(pool))
        except (anthropic.APIError, ValueError, TypeError):
            logger.exception("Recommendation failed, using feed order")
            return fallback

        picked = [pool[index] for index in indices]
        return picked or fallback
