"""Tests for the Gemini HTTP backend, using httpx.MockTransport."""

import json

import httpx
import pytest

from todofy.config import Config
from todofy.llm_client import GeminiBackend, LLMError, gemini_backend_factory, parse_generate_response


def make_backend(handler):
    client = httpx.Client(
        base_url="https://gemini.test/v1beta",
        transport=httpx.MockTransport(handler),
        headers={"x-goog-api-key": "k"},
    )
    return GeminiBackend("k", client=client)


class TestParseGenerateResponse:
    def test_full_response(self):
        resp = parse_generate_response(
            {
                "candidates": [
                    {
                        "content": {"role": "model", "parts": [{"text": "hello"}]},
                        "finishReason": "STOP",
                    }
                ],
                "usageMetadata": {"promptTokenCount": 10, "totalTokenCount": 15},
            }
        )

        assert resp.candidates[0].content.parts[0].text == "hello"
        assert resp.candidates[0].finish_reason == "STOP"
        assert resp.usage_total == 15

    def test_missing_content_and_usage(self):
        resp = parse_generate_response({"candidates": [{"finishReason": "SAFETY"}]})

        assert resp.candidates[0].content is None
        assert resp.usage_total is None

    def test_empty_body(self):
        assert parse_generate_response({}).candidates == []


class TestGeminiBackend:
    def test_requires_api_key(self):
        with pytest.raises(LLMError, match="GEMINI_API_KEY"):
            GeminiBackend("")

    def test_count_tokens(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            seen["key"] = request.headers["x-goog-api-key"]
            return httpx.Response(200, json={"totalTokens": 42})

        backend = make_backend(handler)

        assert backend.count_tokens("gemini-2.5-flash", "some text") == 42
        assert seen["path"] == "/v1beta/models/gemini-2.5-flash:countTokens"
        assert seen["body"]["contents"][0]["parts"][0]["text"] == "some text"
        assert seen["key"] == "k"

    def test_generate(self):
        def handler(request):
            assert request.url.path.endswith(":generateContent")
            return httpx.Response(
                200,
                json={
                    "candidates": [{"content": {"parts": [{"text": "summary"}]}}],
                    "usageMetadata": {"totalTokenCount": 99},
                },
            )

        resp = make_backend(handler).generate("gemini-2.5-flash", "text")

        assert resp.candidates[0].content.parts[0].text == "summary"
        assert resp.usage_total == 99

    def test_http_error_is_wrapped(self):
        backend = make_backend(lambda request: httpx.Response(429, json={"error": "quota"}))

        with pytest.raises(LLMError, match="HTTP error"):
            backend.generate("gemini-2.5-flash", "text")

    def test_bad_count_response(self):
        backend = make_backend(lambda request: httpx.Response(200, json={"nope": 1}))

        with pytest.raises(LLMError, match="countTokens"):
            backend.count_tokens("gemini-2.5-flash", "text")

    def test_invalid_json(self):
        backend = make_backend(lambda request: httpx.Response(200, content=b"not json"))

        with pytest.raises(LLMError, match="Invalid JSON"):
            backend.generate("gemini-2.5-flash", "text")


def test_factory_builds_gemini_backend():
    factory = gemini_backend_factory(Config(gemini_base_url="https://example.test/v1"))
    backend = factory("abc")
    try:
        assert isinstance(backend, GeminiBackend)
    finally:
        backend.close()
