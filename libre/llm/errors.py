"""Exceptions raised while talking to the upstream chat-completions API."""

from __future__ import annotations

from libre.types import ErrorCode


class LLMError(Exception):
    """Base class for failures that end a turn."""

    def __init__(self, message: str, kind: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind or type(self).__name__


class TransportError(LLMError):
    """The request failed or the stream was aborted."""

    def __init__(
        self, message: str, kind: str = "", status_code: int | None = None
    ) -> None:
        super().__init__(message, kind)
        self.status_code = status_code


class StreamStalledError(TransportError):
    """No chunk arrived within the liveness window."""

    def __init__(self, idle_timeout: float) -> None:
        super().__init__(
            f"Stream stalled: no data received for {idle_timeout}s",
            kind=ErrorCode.STREAM_STALLED,
        )
        self.idle_timeout = idle_timeout


class StreamCancelled(Exception):
    """The caller's cancellation signal fired while a read was pending."""
