"""Tests for trendfeed.storage.transfer — JSON/CSV export and JSON import."""

from __future__ import annotations

import asyncio
import json

import pytest

from trendfeed.ingestion.normalize import FeedItem
from trendfeed.settings import AppConfig, SourceConfig
from trendfeed.storage import FeedState, MemoryKeyValueStore
from trendfeed.storage.transfer import CSV_COLUMNS, export_data, import_data, items_to_csv

ITEM = FeedItem(
    id="hackernews-1",
    title='Say "hello", world',
    source="HackerNews",
    url="https://example.com/1",
    summary="line one\nline two",
    published_at="2024-05-01T00:00:00+00:00",
    tags=["python", "web"],
)


def _state_with(items=None, config=None) -> FeedState:
    state = FeedState(MemoryKeyValueStore())
    if items is not None:
        asyncio.run(state.save_feeds(items))
    if config is not None:
        asyncio.run(state.save_config(config))
    return state


class TestCsv:
    def test_header_only_for_no_items(self):
        assert items_to_csv([]) == ",".join(CSV_COLUMNS)

    def test_quotes_are_doubled(self):
        line = items_to_csv([FeedItem(id="x", title='a "b" c', source="RSS")]).split("\n")[1]
        assert line.startswith('x,"a ""b"" c",RSS,')

    def test_fields_with_commas_and_newlines_are_quoted(self):
        text = items_to_csv([ITEM])
        assert '"Say ""hello"", world"' in text
        assert '"line one\nline two"' in text
        assert '"python,web"' in text

    def test_plain_fields_unquoted(self):
        row = items_to_csv([FeedItem(id="x", title="plain", source="RSS")]).split("\n")[1]
        assert row == "x,plain,RSS,,,,,"


class TestExport:
    def test_json_contains_config_and_feeds(self):
        config = AppConfig(sources=[SourceConfig(id="gh", type="GitHub", name="GitHub")], theme="dark")
        state = _state_with([ITEM], config)

        exported = json.loads(asyncio.run(export_data(state, "json")))

        assert exported["config"] == config.to_dict()
        assert exported["feeds"] == [ITEM.to_dict()]

    def test_json_is_indented(self):
        text = asyncio.run(export_data(_state_with([ITEM]), "json"))
        assert text.startswith('{\n  "config"')

    def test_csv_export(self):
        text = asyncio.run(export_data(_state_with([ITEM]), "csv"))
        assert text == items_to_csv([ITEM])

    def test_unknown_format_raises(self):
        with pytest.raises(ValueError, match="Unsupported export format"):
            asyncio.run(export_data(_state_with(), "xml"))


class TestImport:
    def test_import_replaces_config_and_feeds(self):
        state = _state_with([FeedItem(id="old", title="Old", source="RSS")])
        payload = json.dumps({
            "config": {"sources": [{"id": "gh", "type": "GitHub", "name": "GitHub"}], "maxItems": 20},
            "feeds": [ITEM.to_dict()],
        })

        assert asyncio.run(import_data(state, payload, "json")) is True

        assert asyncio.run(state.get_feeds()) == [ITEM]
        config = asyncio.run(state.get_config())
        assert [s.id for s in config.sources] == ["gh"]
        assert config.max_items == 20

    def test_export_then_import_restores_state(self):
        source = _state_with([ITEM], AppConfig(theme="dark"))
        text = asyncio.run(export_data(source, "json"))

        target = _state_with()
        assert asyncio.run(import_data(target, text, "json"))

        assert asyncio.run(target.get_feeds()) == [ITEM]
        assert asyncio.run(target.get_config()).theme == "dark"

    def test_partial_payload_keeps_other_key(self):
        config = AppConfig(theme="dark")
        state = _state_with([ITEM], config)

        assert asyncio.run(import_data(state, json.dumps({"feeds": []}), "json"))

        assert asyncio.run(state.get_feeds()) == []
        assert asyncio.run(state.get_config()) == config

    @pytest.mark.parametrize(
        "payload",
        [
            "not json",
            "[1, 2]",
            json.dumps({"config": {"sources": [{"id": "x", "type": "Gopher"}]}, "feeds": []}),
            json.dumps({"config": {}, "feeds": [{"title": "missing id"}]}),
            json.dumps({"feeds": "nope"}),
        ],
    )
    def test_invalid_payload_writes_nothing(self, payload):
        state = _state_with([ITEM], AppConfig(theme="dark"))

        assert asyncio.run(import_data(state, payload, "json")) is False

        assert asyncio.run(state.get_feeds()) == [ITEM]
        assert asyncio.run(state.get_config()).theme == "dark"

    def test_csv_import_not_supported(self):
        state = _state_with([ITEM])
        assert asyncio.run(import_data(state, items_to_csv([ITEM]), "csv")) is False
        assert asyncio.run(state.get_feeds()) == [ITEM]
