"""
OpenAI-compatible chat-completion provider.

Works with any endpoint that speaks the OpenAI ``/v1/chat/completions`` wire
protocol -- OpenAI itself, OpenRouter-style proxies, vLLM, LM Studio, etc.

Dependencies: ``httpx`` (async HTTP client).  No ``openai`` SDK needed.
Requests are never retried: a failed call ends the turn.
"""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator

import httpx

from libre.llm.errors import TransportError
from libre.llm.providers.base import Provider
from libre.types import ErrorCode

logger = logging.getLogger(__name__)


class OpenAICompatProvider(Provider):
    """
    Stream-capable provider for any OpenAI-API-compatible endpoint.

    Parameters
    ----------
    url:
        Base URL of the API, e.g. ``"https://api.openai.com/v1"`` or
        ``"http://localhost:8080/v1"``.
    api_key:
        Bearer token.  Pass ``""`` for unauthenticated local endpoints.
    timeout:
        Connect/write timeout in seconds.  Reads are bounded by the
        liveness guard instead.
    client:
        Optional shared ``httpx.AsyncClient``.  When omitted a client is
        created per request.
    """

    def __init__(
        self,
        url: str = "https://api.openai.com/v1",
        api_key: str = "",
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._client = client

    @property
    def name(self) -> str:
        return "openai-compat"

    @property
    def endpoint(self) -> str:
        return f"{self._url}/chat/completions"

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def open_stream(self, body: dict) -> AsyncIterator[bytes]:
        logger.info(
            "REQUEST: model=%s tools=%d messages=%d reasoning=%s",
            body.get("model"),
            len(body.get("tools") or []),
            len(body.get("messages") or []),
            body.get("reasoning"),
        )
        timeout = httpx.Timeout(self._timeout, read=None)
        try:
            if self._client is not None:
                async for chunk in self._stream(self._client, body):
                    yield chunk
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    async for chunk in self._stream(client, body):
                        yield chunk
        except httpx.HTTPError as exc:
            raise TransportError(
                str(exc) or type(exc).__name__, kind=type(exc).__name__
            ) from exc

    async def _stream(
        self, client: httpx.AsyncClient, body: dict
    ) -> AsyncIterator[bytes]:
        async with client.stream(
            "POST", self.endpoint, json=body, headers=self._build_headers()
        ) as response:
            if not response.is_success:
                raw = await response.aread()
                message = _error_message(raw)
                raise TransportError(
                    f"API request failed with status {response.status_code}: "
                    f"{message}",
                    kind=ErrorCode.HTTP_ERROR,
                    status_code=response.status_code,
                )
            async for raw_bytes in response.aiter_bytes():
                yield raw_bytes


def _error_message(raw: bytes) -> str:
    """Pull ``error.message`` out of an error body, if it is JSON."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        text = raw.decode("utf-8", errors="replace").strip()
        return text[:200] or "Unknown error"
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return "Unknown error"
