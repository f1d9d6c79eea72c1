"""Tests for the reviewer HTTP client using httpx.MockTransport."""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import AsyncIterator

import httpx
import pytest

from shipgate.errors import ReviewApiError, ReviewTimeout, ReviewTransportError
from shipgate.review.client import ReviewerClient


def _ok_body(*texts: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": t} for t in texts]}}]}


def _client(handler, **kwargs) -> ReviewerClient:
    return ReviewerClient("secret-key", transport=httpx.MockTransport(handler), **kwargs)


def test_returns_joined_candidate_text_and_sends_request() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_ok_body('{"a":', " 1}"))

    client = _client(handler, model="gemini-test", endpoint="https://example.test/models/")
    assert client.review("PROMPT", "CODE") == '{"a": 1}'

    assert seen["url"] == "https://example.test/models/gemini-test:generateContent"
    assert "secret-key" not in seen["url"]
    assert seen["key"] == "secret-key"
    text = seen["body"]["contents"][0]["parts"][0]["text"]
    assert text.startswith("PROMPT")
    assert text.endswith("CODE")
    assert seen["body"]["generationConfig"] == {
        "temperature": 0.2,
        "topK": 40,
        "topP": 0.95,
        "maxOutputTokens": 8192,
    }


def test_error_object_in_body_raises_api_error() -> None:
    client = _client(lambda request: httpx.Response(400, json={"error": {"message": "API key not valid"}}))
    with pytest.raises(ReviewApiError, match="API key not valid"):
        client.review("p", "c")


def test_http_error_without_body_raises_api_error() -> None:
    client = _client(lambda request: httpx.Response(503, json={}))
    with pytest.raises(ReviewApiError, match="HTTP 503"):
        client.review("p", "c")


def test_unparseable_body_raises_api_error() -> None:
    client = _client(lambda request: httpx.Response(200, content=b"<html>oops</html>"))
    with pytest.raises(ReviewApiError, match="Failed to parse"):
        client.review("p", "c")


def test_missing_candidates_raises_api_error() -> None:
    client = _client(lambda request: httpx.Response(200, json={"candidates": []}))
    with pytest.raises(ReviewApiError, match="Unexpected response format"):
        client.review("p", "c")


def test_read_timeout_raises_review_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(ReviewTimeout):
        _client(handler).review("p", "c")


def test_connect_error_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ReviewTransportError, match="refused"):
        _client(handler).review("p", "c")


def test_deadline_cuts_a_stalled_response_before_headers() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, json=_ok_body("late"))

    started = time.monotonic()
    with pytest.raises(ReviewTimeout, match="0.2 seconds"):
        _client(handler, timeout=0.2).review("p", "c")
    assert time.monotonic() - started < 2


def test_deadline_covers_body_streaming() -> None:
    async def body() -> AsyncIterator[bytes]:
        yield b'{"candidates": '
        await asyncio.sleep(0.15)
        yield b"[{"
        await asyncio.sleep(0.15)
        yield b"}]}"

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body())

    started = time.monotonic()
    with pytest.raises(ReviewTimeout):
        _client(handler, timeout=0.2).review("p", "c")
    assert time.monotonic() - started < 2
