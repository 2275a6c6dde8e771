"""
Tool execution dispatcher.

``ToolDispatcher.execute`` looks a tool up by name, validates the parsed
arguments against its JSON schema and runs it under a timeout.  Every
failure is raised as a typed ``ToolError``; turning those into messages the
model can read is the orchestrator's job.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import jsonschema

from libre.llm.types import Message
from libre.tools.base import (
    Tool,
    ToolArgumentError,
    ToolError,
    ToolExecutionError,
    UnknownToolError,
    normalize_schema,
)
from libre.tools.registry import ToolRegistry
from libre.types import ErrorCode

logger = logging.getLogger(__name__)


class ToolDispatcher:
    """
    Parameters
    ----------
    registry : ToolRegistry
        Registered tools.
    timeout : float
        Max seconds for a single tool execution.
    """

    def __init__(self, registry: ToolRegistry, timeout: float = 30.0) -> None:
        self.registry = registry
        self.timeout = timeout

    async def execute(
        self, name: str, arguments: dict, history: list[Message]
    ) -> Any:
        tool = self.registry.get(name)
        if tool is None:
            raise UnknownToolError(f"Unknown tool '{name}'")

        self.check_arguments(tool, arguments)

        start = time.monotonic()
        try:
            result = await asyncio.wait_for(
                tool.execute(arguments, history), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            raise ToolExecutionError(
                f"Tool '{name}' timed out after {self.timeout}s",
                code=ErrorCode.TIMEOUT,
            ) from None
        except ToolError:
            raise
        except Exception as e:
            logger.warning("Tool %s raised: %s", name, e, exc_info=True)
            raise ToolExecutionError(f"Tool execution failed: {e}") from e

        logger.info(
            "Tool %s finished in %dms", name, int((time.monotonic() - start) * 1000)
        )
        return result

    @staticmethod
    def check_arguments(tool: Tool, arguments: dict) -> None:
        """
        Raise ``ToolArgumentError`` unless *arguments* match the tool's
        parameter schema.  A tool whose own schema is broken fails with
        ``ToolExecutionError``.
        """
        try:
            jsonschema.validate(
                instance=arguments, schema=normalize_schema(tool.parameters)
            )
        except jsonschema.ValidationError as e:
            where = "/".join(str(p) for p in e.absolute_path)
            prefix = f"Invalid arguments for '{tool.name}'"
            if where:
                prefix += f" at '{where}'"
            raise ToolArgumentError(f"{prefix}: {e.message}") from None
        except jsonschema.SchemaError as e:
            raise ToolExecutionError(
                f"Tool '{tool.name}' has an invalid parameter schema: {e.message}"
            ) from None
