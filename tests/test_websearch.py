"""Tests for the web search adapter."""

from __future__ import annotations

import asyncio
import io
import json
import urllib.error

import pytest

from learnflow import websearch as websearch_module
from learnflow.errors import WebSearchError
from learnflow.models import WebSearchResult
from learnflow.websearch import (
    GENERIC_RESULTS,
    WebSearchClient,
    format_results,
    simulate_search,
)


class _FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class TestSimulated:
    def test_topic_match(self):
        results = simulate_search("Explain Python decorators")
        assert results[0].title == "Python Documentation"

    def test_math(self):
        assert simulate_search("calculus limits")[0].link == "https://www.khanacademy.org/math"

    def test_generic(self):
        assert simulate_search("history of art") == list(GENERIC_RESULTS)

    def test_client_without_key_is_simulated(self):
        client = WebSearchClient()
        assert client.simulated
        results = asyncio.run(client.search("physics of motion"))
        assert len(results) == 3
        assert results[0].title == "Physics Classroom"


class TestFormat:
    def test_empty(self):
        assert format_results([]) == ""

    def test_numbered_links(self):
        text = format_results([
            WebSearchResult(title="A", link="https://a", snippet="first"),
            WebSearchResult(title="B", link="https://b", snippet="second"),
        ])
        assert text.startswith("\n\nHere are some resources that might help:\n")
        assert "1. [A](https://a)\n   first\n" in text
        assert "2. [B](https://b)\n   second\n" in text

    def test_limit(self):
        results = [WebSearchResult(title=str(i), link=f"https://{i}") for i in range(5)]
        text = format_results(results, limit=2)
        assert "2. [1]" in text
        assert "3. [2]" not in text


class TestLiveClient:
    def test_parses_items(self, monkeypatch):
        payload = {"items": [
            {"title": "One", "link": "https://one", "snippet": "s1"},
            {"title": "No link"},
            {"title": "Two", "link": "https://two", "snippet": "s2"},
        ]}
        monkeypatch.setattr(
            websearch_module.urllib.request,
            "urlopen",
            lambda req, timeout=None: _FakeResponse(json.dumps(payload).encode()),
        )
        client = WebSearchClient(api_key="k", engine_id="cx")
        results = asyncio.run(client.search("anything"))
        assert [r.title for r in results] == ["One", "Two"]

    def test_no_items(self, monkeypatch):
        monkeypatch.setattr(
            websearch_module.urllib.request,
            "urlopen",
            lambda req, timeout=None: _FakeResponse(b"{}"),
        )
        assert asyncio.run(WebSearchClient(api_key="k").search("q")) == []

    def test_provider_failure_raises(self, monkeypatch):
        def fake_urlopen(req, timeout=None):
            raise urllib.error.URLError("dns failure")

        monkeypatch.setattr(websearch_module.urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(WebSearchError):
            asyncio.run(WebSearchClient(api_key="k").search("q"))

    @pytest.mark.parametrize(
        "payload",
        [b'{"items": {"a": 1}}', b'{"items": "text"}', b'[1, 2]'],
    )
    def test_malformed_payload_raises(self, monkeypatch, payload):
        monkeypatch.setattr(
            websearch_module.urllib.request,
            "urlopen",
            lambda req, timeout=None: _FakeResponse(payload),
        )
        with pytest.raises(WebSearchError):
            asyncio.run(WebSearchClient(api_key="k").search("q"))
