"""Tests for trendfeed.ingestion.arxiv_adapter — arXiv Atom search adapter."""

from __future__ import annotations

import asyncio

import httpx

from trendfeed.ingestion.arxiv_adapter import ArxivAdapter
from trendfeed.ingestion.options import ArxivOptions

ARXIV_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>ArXiv Query</title>
  <entry>
    <id>http://arxiv.org/abs/2405.01234v1</id>
    <published>2024-05-02T17:59:58Z</published>
    <title>Scaling Laws
      for Something</title>
    <summary>  We study scaling.  </summary>
    <author><name>Ada Lovelace</name></author>
    <author><name>Alan Turing</name></author>
    <link href="http://arxiv.org/abs/2405.01234v1" rel="alternate" type="text/html"/>
    <category term="cs.LG" scheme="http://arxiv.org/schemas/atom"/>
    <category term="cs.AI" scheme="http://arxiv.org/schemas/atom"/>
  </entry>
  <entry>
    <id>http://arxiv.org/abs/2405.05678v2</id>
    <published>2024-05-01T09:00:00Z</published>
    <title>Single Author Paper</title>
    <summary>Short.</summary>
    <author><name>Grace Hopper</name></author>
    <category term="stat.ML"/>
  </entry>
</feed>
"""


def _fetch(handler, options=None):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await ArxivAdapter(client).fetch(options)
    return asyncio.run(run())


class TestArxivAdapter:
    def test_maps_entries(self):
        result = _fetch(lambda request: httpx.Response(200, text=ARXIV_FEED))

        assert len(result) == 2
        first = result[0]
        assert first.id == "arxiv-2405.01234v1"
        assert first.title == "Scaling Laws for Something"
        assert first.url == "http://arxiv.org/abs/2405.01234v1"
        assert first.summary == "We study scaling."
        assert first.tags == ["LG", "AI"]
        assert first.author == "Ada Lovelace, Alan Turing"
        assert first.published_at == "2024-05-02T17:59:58+00:00"

    def test_single_author_and_category(self):
        second = _fetch(lambda request: httpx.Response(200, text=ARXIV_FEED))[1]
        assert second.author == "Grace Hopper"
        assert second.tags == ["ML"]

    def test_query_sorted_by_submission_date(self):
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, text=ARXIV_FEED)

        _fetch(handler, ArxivOptions(count=25, query="cat:cs.CL"))

        assert seen["search_query"] == "cat:cs.CL"
        assert seen["max_results"] == "25"
        assert seen["sortBy"] == "submittedDate"
        assert seen["sortOrder"] == "descending"

    def test_empty_feed(self):
        empty = '<feed xmlns="http://www.w3.org/2005/Atom"><title>x</title></feed>'
        assert _fetch(lambda request: httpx.Response(200, text=empty)) == []

    def test_malformed_xml_returns_empty(self):
        assert _fetch(lambda request: httpx.Response(200, text="<feed><entry>")) == []
