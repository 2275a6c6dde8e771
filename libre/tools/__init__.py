"""Tool registration and dispatch."""

from libre.tools.base import (
    FunctionTool,
    Tool,
    ToolArgumentError,
    ToolError,
    ToolExecutionError,
    UnknownToolError,
)
from libre.tools.dispatcher import ToolDispatcher
from libre.tools.registry import ToolRegistry

__all__ = [
    "FunctionTool",
    "Tool",
    "ToolArgumentError",
    "ToolDispatcher",
    "ToolError",
    "ToolExecutionError",
    "ToolRegistry",
    "UnknownToolError",
]
