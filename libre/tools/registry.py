from __future__ import annotations

import logging
from importlib.metadata import entry_points
from typing import Any, Callable

from libre.tools.base import FunctionTool, Tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool, *, overwrite: bool = False) -> None:
        if tool.name in self._tools and not overwrite:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def register_function(
        self,
        name: str,
        func: Callable[..., Any],
        description: str = "",
        parameters: dict | None = None,
        *,
        overwrite: bool = False,
    ) -> Tool:
        tool = FunctionTool(name, func, description, parameters)
        self.register(tool, overwrite=overwrite)
        return tool

    def unregister(self, name: str) -> None:
        self._tools.pop(name, None)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def require(self, name: str) -> Tool:
        t = self.get(name)
        if not t:
            raise KeyError(name)
        return t

    def names(self) -> list[str]:
        return sorted(self._tools)

    def list(self) -> list[Tool]:
        return sorted(self._tools.values(), key=lambda t: t.name)

    def to_openai_schema(self, names: list[str] | None = None) -> list[dict]:
        """Schemas for *names* (in the given order), or for every tool."""
        if names is None:
            return [t.to_openai_schema() for t in self.list()]
        schemas = []
        for name in names:
            tool = self.get(name)
            if tool is None:
                logger.warning("Enabled tool %r is not registered", name)
                continue
            schemas.append(tool.to_openai_schema())
        return schemas

    def load_plugins(
        self,
        *,
        enabled: bool,
        group: str = "libre.tools",
        allow_distributions: set[str] | None = None,
        allow_tools: set[str] | None = None,
    ) -> int:
        """Load tools from entry points.

        Each entry point must resolve to a ``Tool`` subclass constructible
        with no arguments, or to a ready ``Tool`` instance.
        """
        if not enabled:
            return 0
        loaded = 0
        for ep in entry_points(group=group):
            dist = getattr(ep, "dist", None)
            dist_name = getattr(dist, "name", None)
            if allow_distributions and dist_name and dist_name not in allow_distributions:
                continue
            if allow_tools and ep.name not in allow_tools:
                continue
            obj = ep.load()
            tool = obj if isinstance(obj, Tool) else obj()
            self.register(tool)
            logger.info("Loaded tool plugin %s from %s", tool.name, dist_name)
            loaded += 1
        return loaded

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
