"""Core types for the LLM subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from libre.types import StopReason


@dataclass
class Attachment:
    """An image or file attached to a user message."""

    kind: str  # "image" or "file"
    url: str = ""  # http(s) or data: URL
    filename: str = ""
    data: str = ""  # base64 data URL for files

    def to_wire(self) -> dict:
        if self.kind == "image":
            return {"type": "image_url", "image_url": {"url": self.url}}
        return {
            "type": "file",
            "file": {"filename": self.filename, "file_data": self.data or self.url},
        }


@dataclass
class ToolCall:
    """A completed tool call.  *arguments* is the raw JSON text as streamed."""

    id: str
    name: str
    arguments: str = ""
    type: str = "function"

    def to_wire(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass
class Message:
    """A single message in a conversation."""

    role: str  # "system", "user", "assistant", "tool"
    content: str = ""
    attachments: list[Attachment] = field(default_factory=list)
    reasoning: str | None = None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    name: str | None = None

    def to_wire(self) -> dict:
        m: dict[str, Any] = {"role": self.role}
        if self.attachments:
            parts: list[dict] = []
            if self.content:
                parts.append({"type": "text", "text": self.content})
            parts.extend(a.to_wire() for a in self.attachments)
            m["content"] = parts
        else:
            m["content"] = self.content or ""
        if self.tool_calls:
            m["tool_calls"] = [tc.to_wire() for tc in self.tool_calls]
        if self.tool_call_id:
            m["tool_call_id"] = self.tool_call_id
        if self.name and self.role == "tool":
            m["name"] = self.name
        return m


# ---------------------------------------------------------------------------
# Stream events produced by the frame decoder
# ---------------------------------------------------------------------------

@dataclass
class ContentDelta:
    text: str


@dataclass
class ReasoningDelta:
    text: str


@dataclass
class ToolCallDelta:
    """
    An incremental fragment of a streaming tool call.

    Providers emit these keyed by *index*; the ``ToolCallAssembler`` merges
    them into finished ``ToolCall`` objects.
    """

    index: int
    id: str | None = None
    name: str | None = None
    arguments: str = ""
    type: str | None = None


@dataclass
class FinishReason:
    reason: str


@dataclass
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class Annotations:
    data: list


@dataclass
class ProtocolError:
    kind: str
    message: str


StreamEvent = Union[
    ContentDelta,
    ReasoningDelta,
    ToolCallDelta,
    FinishReason,
    Usage,
    Annotations,
    ProtocolError,
]


# ---------------------------------------------------------------------------
# Request / output
# ---------------------------------------------------------------------------

@dataclass
class RequestEnvelope:
    """The body of one chat-completions call.  Built fresh per loop pass."""

    model: str
    messages: list[Message]
    stream: bool = True
    tools: list[dict] | None = None
    tool_choice: str | dict | None = None
    temperature: float | None = None
    top_p: float | None = None
    seed: int | None = None
    reasoning: dict | None = None
    plugins: list[dict] | None = None

    def to_body(self) -> dict:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_wire() for m in self.messages],
            "stream": self.stream,
        }
        optional = {
            "tools": self.tools,
            "tool_choice": self.tool_choice,
            "temperature": self.temperature,
            "top_p": self.top_p,
            "seed": self.seed,
            "reasoning": self.reasoning,
            "plugins": self.plugins,
        }
        for key, value in optional.items():
            if value is not None:
                body[key] = value
        return body


@dataclass
class ChunkError:
    kind: str
    message: str


@dataclass
class StreamChunk:
    """
    A single chunk yielded to the caller while a turn is running.

    Live chunks carry exactly one of *content*, *reasoning*, *tool_deltas*,
    *finish_reason*, *usage* or *annotations*.  The last chunk of a turn has
    ``done=True`` and carries either *error*, ``cancelled=True``, or a
    *stop_reason* together with the finalized *messages* of the turn.
    """

    content: str | None = None
    reasoning: str | None = None
    tool_deltas: list[ToolCallDelta] | None = None
    finish_reason: str | None = None
    usage: Usage | None = None
    annotations: list | None = None
    error: ChunkError | None = None
    cancelled: bool = False
    stop_reason: StopReason | None = None
    messages: list[Message] | None = None
    done: bool = False
