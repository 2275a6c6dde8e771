"""
Stream frame decoder.

Turns the raw bytes of a chat-completions stream into ``StreamEvent`` objects.
Each frame has the form::

    data: {json}\\n\\n

The sentinel ``data: [DONE]`` terminates the stream.  Malformed frames
(invalid JSON, or JSON not shaped like a completion chunk) are dropped; a frame carrying an ``error`` object produces a ``ProtocolError``
and ends the stream.
"""

from __future__ import annotations

import codecs
import json
import logging
from typing import Any, AsyncIterator

from libre.llm.types import (
    Annotations,
    ContentDelta,
    FinishReason,
    ProtocolError,
    ReasoningDelta,
    StreamEvent,
    ToolCallDelta,
    Usage,
)

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class FrameDecoder:
    """Incremental, push-style decoder.  Feed bytes, collect events."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.finished = False

    def feed(self, data: bytes) -> list[StreamEvent]:
        if self.finished:
            return []
        self._buffer += self._decoder.decode(data)

        events: list[StreamEvent] = []
        while "\n" in self._buffer and not self.finished:
            line, self._buffer = self._buffer.split("\n", 1)
            events.extend(self._handle_line(line))
        return events

    def close(self) -> list[StreamEvent]:
        """Flush a trailing line that was not newline-terminated."""
        if self.finished:
            return []
        self._buffer += self._decoder.decode(b"", final=True)
        line, self._buffer = self._buffer, ""
        events = self._handle_line(line)
        self.finished = True
        return events

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _handle_line(self, line: str) -> list[StreamEvent]:
        line = line.rstrip("\r")
        if not line.startswith(DATA_PREFIX):
            # Blank event boundaries, comments, "event:" fields.
            return []

        data_str = line[len(DATA_PREFIX):].strip()
        if data_str == DONE_SENTINEL:
            self.finished = True
            return []

        try:
            payload = json.loads(data_str)
        except json.JSONDecodeError:
            logger.warning("Failed to parse SSE data: %s", data_str[:200])
            return []
        if not isinstance(payload, dict):
            logger.warning("Ignoring non-object SSE payload: %s", data_str[:200])
            return []

        error = payload.get("error")
        if error:
            self.finished = True
            return [_protocol_error(error)]

        try:
            return frame_to_events(payload)
        except TypeError as exc:
            logger.warning("Dropping malformed SSE frame (%s): %s", exc, data_str[:200])
            return []


def frame_to_events(payload: dict) -> list[StreamEvent]:
    """
    Convert one parsed frame into events, one per populated field.

    Raises ``TypeError`` when the frame is not shaped like a chat-completion
    chunk; the caller drops such frames whole.
    """
    events: list[StreamEvent] = []
    choices = _typed(payload.get("choices"), list, "choices") or []
    choice = choices[0] if choices else {}
    if not isinstance(choice, dict):
        raise TypeError(f"choice must be dict, got {type(choice).__name__}")
    delta = _typed(choice.get("delta"), dict, "delta") or {}

    content = _typed(delta.get("content"), str, "content")
    if content:
        events.append(ContentDelta(content))

    reasoning = delta.get("reasoning") or delta.get("reasoning_content")
    if _typed(reasoning, str, "reasoning"):
        events.append(ReasoningDelta(reasoning))

    for raw_tc in _typed(delta.get("tool_calls"), list, "tool_calls") or []:
        if not isinstance(raw_tc, dict):
            raise TypeError(f"tool call must be dict, got {type(raw_tc).__name__}")
        func = _typed(raw_tc.get("function"), dict, "function") or {}
        index = raw_tc.get("index", 0)
        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(f"tool call index must be an int, got {index!r}")
        events.append(
            ToolCallDelta(
                index=index,
                id=_typed(raw_tc.get("id"), str, "id") or None,
                name=_typed(func.get("name"), str, "name") or None,
                arguments=_typed(func.get("arguments"), str, "arguments") or "",
                type=_typed(raw_tc.get("type"), str, "type") or None,
            )
        )

    finish_reason = _typed(choice.get("finish_reason"), str, "finish_reason")
    if finish_reason:
        events.append(FinishReason(finish_reason))

    usage = _typed(payload.get("usage"), dict, "usage")
    if usage:
        prompt = usage.get("prompt_tokens") or 0
        completion = usage.get("completion_tokens") or 0
        events.append(
            Usage(
                prompt_tokens=prompt,
                completion_tokens=completion,
                total_tokens=usage.get("total_tokens") or prompt + completion,
            )
        )

    annotations = delta.get("annotations")
    if not annotations:
        message = _typed(choice.get("message"), dict, "message") or {}
        annotations = message.get("annotations")
    if _typed(annotations, list, "annotations"):
        events.append(Annotations(list(annotations)))

    return events


def _typed(value: Any, expected: type, field: str) -> Any:
    """Return *value* unchanged if it is ``None`` or of *expected* type."""
    if value is not None and not isinstance(value, expected):
        raise TypeError(
            f"{field} must be {expected.__name__}, got {type(value).__name__}"
        )
    return value


def _protocol_error(error: object) -> ProtocolError:
    if isinstance(error, dict):
        kind = error.get("type") or error.get("code") or "APIError"
        message = error.get("message") or "Upstream error"
        return ProtocolError(kind=str(kind), message=str(message))
    return ProtocolError(kind="APIError", message=str(error))


async def decode_stream(source: AsyncIterator[bytes]) -> AsyncIterator[StreamEvent]:
    """Decode an async byte stream into ``StreamEvent`` objects, lazily."""
    decoder = FrameDecoder()
    async for raw_bytes in source:
        for event in decoder.feed(raw_bytes):
            yield event
        if decoder.finished:
            return
    for event in decoder.close():
        yield event
