"""Abstract base class for LLM providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator


class Provider(ABC):
    """
    A provider opens one streaming chat-completion call against an endpoint.

    Implementations yield the raw response bytes exactly as received; frame
    decoding happens downstream.  Failures before or during the stream must
    be raised as ``libre.llm.errors.TransportError``.
    """

    @abstractmethod
    async def open_stream(self, body: dict) -> AsyncIterator[bytes]:
        """
        POST *body* and yield the response byte stream.
        """
        ...
        # Make the method an async generator so sub-classes can ``yield``.
        # This line is unreachable but satisfies the type checker.
        if False:  # pragma: no cover
            yield b""  # type: ignore[misc]

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name (e.g. ``"openai-compat"``)."""
        ...
