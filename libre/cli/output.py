"""Output formatting utilities for the CLI."""

from __future__ import annotations

import json

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from libre.llm.models import ModelCapability, ReasoningKind
from libre.llm.types import ChunkError, Usage
from libre.tools.base import Tool

REASONING_COLORS = {
    ReasoningKind.NONE: "dim",
    ReasoningKind.ALWAYS: "green",
    ReasoningKind.OPTIONAL: "yellow",
    ReasoningKind.ROUTES_TO_MODEL: "magenta",
    ReasoningKind.EFFORT_SELECTABLE: "cyan",
}


def describe_reasoning(model: ModelCapability) -> str:
    mode = model.reasoning
    if mode.kind is ReasoningKind.ROUTES_TO_MODEL:
        return f"routes to {mode.alternate_model}"
    if mode.kind is ReasoningKind.EFFORT_SELECTABLE:
        levels = "/".join(mode.levels)
        return f"effort {levels} (default {mode.default_effort})"
    if mode.kind is ReasoningKind.ALWAYS and mode.force_enabled:
        return "always (forced)"
    return mode.kind.value


class OutputFormatter:
    """Rich-based output formatting for the libre CLI."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def format_model_list(self, models: list[ModelCapability], active: str = "") -> None:
        table = Table(title="Models")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name")
        table.add_column("Tools", no_wrap=True)
        table.add_column("Vision", no_wrap=True)
        table.add_column("Reasoning")

        for m in models:
            color = REASONING_COLORS.get(m.reasoning.kind, "white")
            marker = " *" if m.id == active else ""
            table.add_row(
                m.id + marker,
                m.name,
                "yes" if m.supports_tools else "no",
                "yes" if m.supports_vision else "no",
                Text(describe_reasoning(m), style=color),
            )

        self.console.print(table)

    def format_model_info(self, model: ModelCapability) -> None:
        self.console.print(Panel(
            f"[bold]{model.name}[/bold]\n\n"
            f"[dim]Tools:[/dim] {model.supports_tools}\n"
            f"[dim]Vision:[/dim] {model.supports_vision}\n"
            f"[dim]Reasoning:[/dim] {describe_reasoning(model)}\n\n"
            f"{model.description}",
            title=f"Model: {model.id}",
        ))

    def format_tool_list(self, tools: list[Tool]) -> None:
        if not tools:
            self.console.print("[dim]No tools registered.[/dim]")
            return

        table = Table(title="Registered Tools", show_lines=True)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Description")
        table.add_column("Parameters")

        for t in tools:
            params = ", ".join(sorted((t.parameters or {}).get("properties", {})))
            table.add_row(t.name, t.description, params or "-")

        self.console.print(table)

    def format_config(self, config: dict) -> None:
        self.console.print(Syntax(json.dumps(config, indent=2), "json", theme="monokai"))

    def format_usage(self, usage: Usage) -> None:
        self.console.print(
            f"[dim]tokens: {usage.prompt_tokens} in / "
            f"{usage.completion_tokens} out / {usage.total_tokens} total[/dim]"
        )

    def format_error(self, error: ChunkError) -> None:
        self.console.print(f"\n[red]Error ({error.kind}):[/red] {error.message}")
