from dataclasses import dataclass, field
from enum import Enum


class ErrorCode:
    INVALID_ARGUMENTS = "invalid_arguments"
    VALIDATION_ERROR = "validation_error"
    TIMEOUT = "timeout"
    TOOL_EXCEPTION = "tool_exception"
    UNKNOWN_TOOL = "unknown_tool"
    ITERATION_LIMIT = "iteration_limit"
    HTTP_ERROR = "http_error"
    STREAM_STALLED = "stream_stalled"
    LLM_PROTOCOL_ERROR = "llm_protocol_error"


class StopReason(Enum):
    COMPLETED = "completed"
    ITERATION_LIMIT = "iteration_limit"


class BudgetPolicy(Enum):
    """What happens to pending tool calls when the iteration budget runs out."""

    DROP = "drop"
    REPORT = "report"


@dataclass
class TurnSettings:
    model: str
    reasoning_effort: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    seed: int | None = None
    tools: list[str] = field(default_factory=list)
    web_search: bool = False
    system_prompt: str = ""
