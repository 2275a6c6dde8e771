"""LLM subsystem -- capabilities, reasoning policy, stream decoding and tool-call assembly."""

from libre.llm.frames import FrameDecoder, decode_stream
from libre.llm.liveness import LivenessGuard
from libre.llm.models import ModelCapability, ModelRegistry, ReasoningKind, ReasoningMode
from libre.llm.reasoning import ReasoningPolicyResolver, ReasoningResolution
from libre.llm.tool_call_assembler import ToolCallAssembler
from libre.llm.types import (
    Attachment,
    Message,
    RequestEnvelope,
    StreamChunk,
    ToolCall,
    ToolCallDelta,
)

__all__ = [
    "Attachment",
    "FrameDecoder",
    "LivenessGuard",
    "Message",
    "ModelCapability",
    "ModelRegistry",
    "ReasoningKind",
    "ReasoningMode",
    "ReasoningPolicyResolver",
    "ReasoningResolution",
    "RequestEnvelope",
    "StreamChunk",
    "ToolCall",
    "ToolCallAssembler",
    "ToolCallDelta",
    "decode_stream",
]
