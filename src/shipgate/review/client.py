"""Gemini reviewer client."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx

from shipgate.config import DEFAULT_REVIEW_ENDPOINT, DEFAULT_REVIEW_MODEL, DEFAULT_REVIEW_TIMEOUT_SECONDS
from shipgate.errors import ReviewApiError, ReviewTimeout, ReviewTransportError

logger = logging.getLogger(__name__)

GENERATION_CONFIG: dict[str, Any] = {
    "temperature": 0.2,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 8192,
}


class ReviewerClient:
    """Send one review prompt plus code context, return the model's text.

    The timeout bounds the whole exchange: connect, send, headers and every
    body chunk share one deadline. Past it the in-flight request is cancelled
    and ``ReviewTimeout`` raised. There are no retries here; callers decide.
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_REVIEW_MODEL,
        endpoint: str = DEFAULT_REVIEW_ENDPOINT,
        timeout: float = DEFAULT_REVIEW_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self.endpoint}/{self.model}:generateContent"

    def build_request_body(self, prompt: str, code_context: str) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt + "\n\n---\n\nCode to review:\n\n" + code_context}]}],
            "generationConfig": dict(GENERATION_CONFIG),
        }

    def review(self, prompt: str, code_context: str) -> str:
        """Run one review request.

        Raises:
            ReviewTimeout: The exchange exceeded ``timeout`` seconds
            ReviewTransportError: The endpoint could not be reached
            ReviewApiError: The endpoint returned an error or an unusable body
        """
        body = self.build_request_body(prompt, code_context)
        headers = {"x-goog-api-key": self.api_key}
        try:
            status_code, raw = asyncio.run(asyncio.wait_for(self._exchange(headers, body), timeout=self.timeout))
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise ReviewTimeout(f"Review request timed out after {self.timeout:g} seconds") from exc
        except httpx.TransportError as exc:
            raise ReviewTransportError(f"Review request failed: {exc}") from exc

        return self._extract_text(status_code, raw)

    async def _exchange(self, headers: dict[str, str], body: dict[str, Any]) -> tuple[int, bytes]:
        async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), transport=self._transport) as client:
            async with client.stream("POST", self.url, headers=headers, json=body) as response:
                chunks = [chunk async for chunk in response.aiter_bytes()]
                return response.status_code, b"".join(chunks)

    def _extract_text(self, status_code: int, raw: bytes) -> str:
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ReviewApiError(f"Failed to parse review response (HTTP {status_code}): {exc}") from exc

        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ReviewApiError(f"Review API error (HTTP {status_code}): {message}")

        if status_code >= 400:
            raise ReviewApiError(f"Review API returned HTTP {status_code}")

        try:
            parts = data["candidates"][0]["content"]["parts"]
            texts = [part["text"] for part in parts if isinstance(part.get("text"), str)]
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise ReviewApiError("Unexpected response format from review API") from exc
        if not texts:
            raise ReviewApiError("Unexpected response format from review API")
        return "".join(texts)
