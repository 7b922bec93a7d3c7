"""Tests for the Gemini client."""

from __future__ import annotations

import asyncio
import io
import json
import urllib.error
import urllib.request

import pytest

from learnflow import llm as llm_module
from learnflow.errors import UpstreamError
from learnflow.llm import LLMClient


class _FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


def _ok(text: str) -> _FakeResponse:
    payload = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    return _FakeResponse(json.dumps(payload).encode("utf-8"))


class TestExtractText:
    def test_happy_path(self):
        data = {"candidates": [{"content": {"parts": [{"text": "hi"}]}}]}
        assert LLMClient._extract_text(data) == "hi"

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"candidates": []},
            {"candidates": [{"content": {"parts": []}}]},
            {"candidates": [{"content": {"parts": [{"text": 3}]}}]},
            ["not", "a", "dict"],
        ],
    )
    def test_invalid_shapes(self, data):
        with pytest.raises(UpstreamError, match="Invalid response format"):
            LLMClient._extract_text(data)


def test_request_body_shape():
    body = json.loads(LLMClient._build_body("prompt text", 0.3, 1000))
    assert body == {
        "contents": [{"parts": [{"text": "prompt text"}]}],
        "generationConfig": {"temperature": 0.3, "maxOutputTokens": 1000},
    }


def test_endpoint_uses_model():
    client = LLMClient(api_key="k", model="gemini-test")
    assert client.endpoint.endswith("/models/gemini-test:generateContent")


class TestGenerate:
    def test_success(self, monkeypatch):
        seen: dict = {}

        def fake_urlopen(req, timeout=None):
            seen["url"] = req.full_url
            seen["key"] = req.get_header("X-goog-api-key")
            seen["body"] = json.loads(req.data)
            return _ok("Hello student")

        monkeypatch.setattr(llm_module.urllib.request, "urlopen", fake_urlopen)
        client = LLMClient(api_key="secret")
        text = asyncio.run(client.generate("Explain atoms"))

        assert text == "Hello student"
        assert seen["key"] == "secret"
        assert "secret" not in seen["url"]
        assert seen["body"]["generationConfig"] == {"temperature": 0.7, "maxOutputTokens": 800}
        assert client.get_stats() == {"total_calls": 1, "failed_calls": 0}

    def test_http_error(self, monkeypatch):
        def fake_urlopen(req, timeout=None):
            raise urllib.error.HTTPError(
                req.full_url, 503, "Unavailable", hdrs=None, fp=io.BytesIO(b"overloaded")
            )

        monkeypatch.setattr(llm_module.urllib.request, "urlopen", fake_urlopen)
        client = LLMClient(api_key="secret")
        with pytest.raises(UpstreamError, match="503"):
            asyncio.run(client.generate("x"))
        assert client.get_stats() == {"total_calls": 1, "failed_calls": 1}

    def test_transport_error(self, monkeypatch):
        def fake_urlopen(req, timeout=None):
            raise urllib.error.URLError("connection refused")

        monkeypatch.setattr(llm_module.urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(UpstreamError, match="request failed"):
            asyncio.run(LLMClient(api_key="k").generate("x"))

    def test_invalid_json(self, monkeypatch):
        monkeypatch.setattr(
            llm_module.urllib.request,
            "urlopen",
            lambda req, timeout=None: _FakeResponse(b"<html>"),
        )
        with pytest.raises(UpstreamError, match="invalid JSON"):
            asyncio.run(LLMClient(api_key="k").generate("x"))

    def test_malformed_payload(self, monkeypatch):
        monkeypatch.setattr(
            llm_module.urllib.request,
            "urlopen",
            lambda req, timeout=None: _FakeResponse(b'{"candidates": []}'),
        )
        with pytest.raises(UpstreamError, match="Invalid response format"):
            asyncio.run(LLMClient(api_key="k").generate("x"))
