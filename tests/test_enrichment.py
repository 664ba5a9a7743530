"""Tests for trendfeed.enrichment — prompts, response parsing, and the Enricher."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest

from trendfeed.config import Config
from trendfeed.enrichment.prompt import (
    DEFAULT_CATEGORY,
    RECOMMEND_SYSTEM_PROMPT,
    TagResult,
    format_recommend_prompt,
    format_summary_prompt,
    format_tags_prompt,
    parse_recommend_response,
    parse_tags_response,
)
from trendfeed.enrichment.summarizer import (
    SUMMARY_CACHE_PREFIX,
    Enricher,
    EnrichmentError,
    EnrichmentNotConfiguredError,
    LLMSettings,
    _call_llm,
    _stream_llm,
    tags_cache_key,
)
from trendfeed.ingestion.normalize import FeedItem
from trendfeed.settings import AppConfig
from trendfeed.storage import FeedState, MemoryKeyValueStore

ITEM = FeedItem(
    id="github-acme-rocket",
    title="acme/rocket",
    source="GitHub",
    url="https://github.com/acme/rocket",
    summary="A fast rocket engine",
    tags=["Rust"],
)


def _enricher(api_key: str = "sk-test", **config) -> tuple[Enricher, FeedState]:
    state = FeedState(MemoryKeyValueStore())
    settings = Config(database_path=":memory:", llm_api_key=api_key, **config)
    return Enricher(state, settings), state


def _api_error() -> anthropic.APIError:
    return anthropic.APIConnectionError(
        request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    )


def _fake_stream(chunks: list[str]):
    async def fake(llm, *, system_prompt, user_prompt, on_stream, max_tokens=1000):
        text = ""
        for chunk in chunks:
            text += chunk
            if on_stream is not None:
                on_stream(text)
        return text
    return fake


# --- Prompt formatting ---


class TestPrompts:
    def test_summary_prompt_includes_item_fields(self):
        prompt = format_summary_prompt(
            title="T", source="GitHub", url="https://x", summary="s" * 600,
            tags=["a", "b"], language="German",
        )
        assert "Title: T" in prompt
        assert "Original summary: " + "s" * 500 + "\n" in prompt
        assert "Tags: a, b" in prompt
        assert "Write in German." in prompt

    def test_summary_prompt_omits_missing_extras(self):
        prompt = format_summary_prompt(
            title="T", source="RSS", url="", summary=None, tags=None, language="English",
        )
        assert "Original summary" not in prompt
        assert "Tags:" not in prompt

    def test_tags_prompt_embeds_content(self):
        prompt = format_tags_prompt("Some article", "English")
        assert "Some article" in prompt
        assert '{"tags": ["tag1", "tag2", "tag3"], "category": "AI"}' in prompt

    def test_recommend_prompt_numbers_from_one(self):
        prompt = format_recommend_prompt([("A", "RSS"), ("B", "GitHub")], pick=1)
        assert "1. A - RSS\n2. B - GitHub" in prompt
        assert "(1-2)" in prompt


# --- Response parsing ---


class TestParseTags:
    def test_plain_json(self):
        result = parse_tags_response('{"tags": ["LLM", "Agents"], "category": "AI"}')
        assert result == TagResult(tags=["LLM", "Agents"], category="AI")

    def test_fenced_json_with_chatter(self):
        raw = 'Sure!\n```json\n{"tags": ["Rust"], "category": "Development"}\n```'
        assert parse_tags_response(raw) == TagResult(tags=["Rust"], category="Development")

    def test_unknown_category_becomes_other(self):
        result = parse_tags_response('{"tags": ["x"], "category": "Sports"}')
        assert result.category == DEFAULT_CATEGORY

    def test_truncated_json_falls_back_to_extraction(self):
        raw = '{"tags": ["LLM", "RAG", "Search"], "category": "Research", "extra": '
        assert parse_tags_response(raw) == TagResult(
            tags=["LLM", "RAG", "Search"], category="Research"
        )

    def test_caps_tags_and_strips_blanks(self):
        raw = '{"tags": ["a", " ", "b", "c", "d", "e", "f"], "category": "News"}'
        assert parse_tags_response(raw).tags == ["a", "b", "c", "d", "e"]

    def test_garbage_gives_empty_other(self):
        assert parse_tags_response("no idea") == TagResult(tags=[], category="Other")


class TestParseRecommend:
    def test_string_indices_to_zero_based(self):
        assert parse_recommend_response('["1", "5", "3"]', total=5) == [0, 4, 2]

    def test_drops_out_of_range_and_duplicates(self):
        assert parse_recommend_response("[0, 2, 2, 9]", total=3) == [1]

    def test_non_array_raises(self):
        with pytest.raises(ValueError):
            parse_recommend_response('{"picks": [1]}', total=3)


# --- Enricher ---


class TestSettings:
    def test_not_configured_without_key(self):
        enricher, _ = _enricher(api_key="")
        assert asyncio.run(enricher.llm_settings()) is None

    def test_app_config_overrides_process_config(self):
        enricher, state = _enricher(llm_base_url="https://proxy.example/")
        asyncio.run(state.save_config(AppConfig(api_key="sk-user", api_model="custom-model")))

        llm = asyncio.run(enricher.llm_settings())

        assert llm.api_key == "sk-user"
        assert llm.model == "custom-model"
        assert llm.base_url == "https://proxy.example"


class TestGenerateSummary:
    def test_not_configured_raises(self):
        enricher, _ = _enricher(api_key="")
        with pytest.raises(EnrichmentNotConfiguredError):
            asyncio.run(enricher.generate_summary(ITEM))

    def test_streams_and_caches(self):
        enricher, state = _enricher()
        seen: list[str] = []

        with patch(
            "trendfeed.enrichment.summarizer._stream_llm", _fake_stream(["A rocket ", "engine. "])
        ):
            summary = asyncio.run(enricher.generate_summary(ITEM, on_stream=seen.append))

        assert summary == "A rocket engine."
        assert seen == ["A rocket ", "A rocket engine. "]
        cached = asyncio.run(state.get_cache(f"{SUMMARY_CACHE_PREFIX}{ITEM.id}"))
        assert cached["summary"] == "A rocket engine."

    def test_cache_hit_skips_api_and_delivers_once(self):
        enricher, state = _enricher(api_key="")
        asyncio.run(state.save_cache(
            f"{SUMMARY_CACHE_PREFIX}{ITEM.id}",
            {"summary": "Cached text", "timestamp": 10**13},
        ))
        seen: list[str] = []
        stream = AsyncMock()

        with patch("trendfeed.enrichment.summarizer._stream_llm", stream):
            summary = asyncio.run(enricher.generate_summary(ITEM, on_stream=seen.append))

        assert summary == "Cached text"
        assert seen == ["Cached text"]
        stream.assert_not_called()

    def test_expired_cache_regenerates(self):
        enricher, state = _enricher()
        asyncio.run(state.save_cache(
            f"{SUMMARY_CACHE_PREFIX}{ITEM.id}",
            {"summary": "Old", "timestamp": 1},
        ))

        with patch("trendfeed.enrichment.summarizer._stream_llm", _fake_stream(["New"])):
            assert asyncio.run(enricher.generate_summary(ITEM)) == "New"

    def test_skip_cache_regenerates(self):
        enricher, state = _enricher()
        asyncio.run(state.save_cache(
            f"{SUMMARY_CACHE_PREFIX}{ITEM.id}",
            {"summary": "Cached", "timestamp": 10**13},
        ))
        with patch("trendfeed.enrichment.summarizer._stream_llm", _fake_stream(["Fresh"])):
            assert asyncio.run(enricher.generate_summary(ITEM, skip_cache=True)) == "Fresh"

    def test_api_error_wrapped(self):
        enricher, _ = _enricher()
        with patch(
            "trendfeed.enrichment.summarizer._stream_llm",
            AsyncMock(side_effect=_api_error()),
        ):
            with pytest.raises(EnrichmentError, match="AI summary generation failed"):
                asyncio.run(enricher.generate_summary(ITEM))

    def test_empty_response_raises_and_is_not_cached(self):
        enricher, state = _enricher()
        with patch("trendfeed.enrichment.summarizer._stream_llm", _fake_stream(["  "])):
            with pytest.raises(EnrichmentError, match="empty"):
                asyncio.run(enricher.generate_summary(ITEM))
        assert asyncio.run(state.get_cache(f"{SUMMARY_CACHE_PREFIX}{ITEM.id}")) is None


class TestGenerateTags:
    def test_parses_and_caches_by_content_hash(self):
        enricher, state = _enricher()
        call = AsyncMock(return_value='{"tags": ["Rust", "Engines"], "category": "Development"}')

        with patch("trendfeed.enrichment.summarizer._call_llm", call):
            first = asyncio.run(enricher.generate_tags("rocket engine in rust"))
            second = asyncio.run(enricher.generate_tags("rocket engine in rust"))

        assert first == second == TagResult(tags=["Rust", "Engines"], category="Development")
        call.assert_awaited_once()
        cached = asyncio.run(state.get_cache(tags_cache_key("rocket engine in rust")))
        assert cached["result"] == first.to_dict()

    def test_cache_key_is_stable_and_prefixed(self):
        key = tags_cache_key("hello")
        assert key == tags_cache_key("hello")
        assert key != tags_cache_key("hello!")
        assert key.startswith("ai_tags_")
        assert len(key) == len("ai_tags_") + 32

    def test_not_configured_raises(self):
        enricher, _ = _enricher(api_key="")
        with pytest.raises(EnrichmentNotConfiguredError):
            asyncio.run(enricher.generate_tags("text"))

    def test_empty_response_raises(self):
        enricher, _ = _enricher()
        with patch("trendfeed.enrichment.summarizer._call_llm", AsyncMock(return_value="")):
            with pytest.raises(EnrichmentError):
                asyncio.run(enricher.generate_tags("text"))


class TestRecommend:
    ITEMS = [FeedItem(id=f"i{n}", title=f"Item {n}", source="RSS") for n in range(8)]

    def test_unconfigured_returns_head(self):
        enricher, _ = _enricher(api_key="")
        assert asyncio.run(enricher.recommend(self.ITEMS, pick=3)) == self.ITEMS[:3]

    def test_returns_model_picks(self):
        enricher, _ = _enricher()
        call = AsyncMock(return_value='["2", "7"]')

        with patch("trendfeed.enrichment.summarizer._call_llm", call):
            picked = asyncio.run(enricher.recommend(self.ITEMS, pick=2))

        assert [item.id for item in picked] == ["i1", "i6"]
        assert call.await_args.kwargs["system_prompt"] == RECOMMEND_SYSTEM_PROMPT

    def test_bad_answer_falls_back(self):
        enricher, _ = _enricher()
        with patch("trendfeed.enrichment.summarizer._call_llm", AsyncMock(return_value="I pick 2")):
            assert asyncio.run(enricher.recommend(self.ITEMS, pick=2)) == self.ITEMS[:2]

    def test_api_error_falls_back(self):
        enricher, _ = _enricher()
        with patch(
            "trendfeed.enrichment.summarizer._call_llm", AsyncMock(side_effect=_api_error())
        ):
            assert asyncio.run(enricher.recommend(self.ITEMS)) == self.ITEMS[:5]

    def test_empty_feed(self):
        enricher, _ = _enricher()
        assert asyncio.run(enricher.recommend([])) == []


# --- Anthropic client ---

LLM = LLMSettings(
    api_key="sk-test",
    model="claude-test",
    base_url="",
    max_retries=0,
    timeout=5,
)


def _fake_client() -> MagicMock:
    client = MagicMock()
    client.__aenter__.return_value = client
    return client


class TestClientLifecycle:
    def test_call_closes_client(self):
        client = _fake_client()
        client.messages.create = AsyncMock(
            return_value=SimpleNamespace(content=[SimpleNamespace(text="done")])
        )

        with patch("trendfeed.enrichment.summarizer._client", return_value=client):
            text = asyncio.run(
                _call_llm(LLM, system_prompt="s", user_prompt="u", temperature=0.3, max_tokens=50)
            )

        assert text == "done"
        client.__aexit__.assert_awaited_once()

    def test_call_closes_client_on_error(self):
        client = _fake_client()
        client.messages.create = AsyncMock(side_effect=_api_error())

        with patch("trendfeed.enrichment.summarizer._client", return_value=client):
            with pytest.raises(anthropic.APIError):
                asyncio.run(
                    _call_llm(LLM, system_prompt="s", user_prompt="u", temperature=0.3, max_tokens=50)
                )

        client.__aexit__.assert_awaited_once()

    def test_stream_closes_client(self):
        async def chunks():
            for chunk in ("Hel", "", "lo"):
                yield chunk

        stream = MagicMock()
        stream.text_stream = chunks()
        client = _fake_client()
        client.messages.stream.return_value.__aenter__.return_value = stream
        seen: list[str] = []

        with patch("trendfeed.enrichment.summarizer._client", return_value=client):
            text = asyncio.run(
                _stream_llm(LLM, system_prompt="s", user_prompt="u", on_stream=seen.append)
            )

        assert text == "Hello"
        assert seen == ["Hel", "Hello"]
        client.__aexit__.assert_awaited_once()
