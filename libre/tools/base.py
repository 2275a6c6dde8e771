from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable

from libre.llm.types import Message
from libre.types import ErrorCode


class ToolError(Exception):
    """Structured failure from a tool dispatch."""

    code = ErrorCode.TOOL_EXCEPTION

    def __init__(self, message: str, code: str = ""):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class UnknownToolError(ToolError):
    code = ErrorCode.UNKNOWN_TOOL


class ToolArgumentError(ToolError):
    code = ErrorCode.VALIDATION_ERROR


class ToolExecutionError(ToolError):
    code = ErrorCode.TOOL_EXCEPTION


def normalize_schema(schema: dict) -> dict:
    s = dict(schema or {})
    s.setdefault("type", "object")
    s.setdefault("properties", {})
    return s


class Tool(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def description(self) -> str: ...

    @property
    @abstractmethod
    def parameters(self) -> dict: ...

    @abstractmethod
    async def execute(self, arguments: dict, history: list[Message]) -> Any:
        """Run the tool.  The return value must be JSON-serializable."""

    def to_openai_schema(self) -> dict:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": normalize_schema(self.parameters),
            },
        }


class FunctionTool(Tool):
    """Wraps a plain (sync or async) callable as a tool.

    The callable receives the parsed arguments dict and, if it declares a
    second positional parameter, the message history.
    """

    def __init__(
        self,
        name: str,
        func: Callable[..., Any],
        description: str = "",
        parameters: dict | None = None,
    ) -> None:
        self._name = name
        self._func = func
        self._description = description or (inspect.getdoc(func) or "")
        self._parameters = parameters or {}
        self._wants_history = len(inspect.signature(func).parameters) >= 2

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> dict:
        return self._parameters

    async def execute(self, arguments: dict, history: list[Message]) -> Any:
        if self._wants_history:
            result = self._func(arguments, history)
        else:
            result = self._func(arguments)
        if inspect.isawaitable(result):
            result = await result
        return result
