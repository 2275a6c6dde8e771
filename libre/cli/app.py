"""
Main CLI application for libre-core.

Usage:
    libre chat [--profile NAME] [--model ID] [--effort LEVEL]
    libre ask "question" [--model ID] [--effort LEVEL]
    libre models list|info
    libre tools list
    libre config show|validate
    libre version
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from libre import __version__
from libre.config import LibreConfig, load_config

app = typer.Typer(name="libre", help="Libre - streaming chat client with tool calling")
models_app = typer.Typer(help="Model catalogue")
tools_app = typer.Typer(help="Tool management")
config_app = typer.Typer(help="Configuration management")

app.add_typer(models_app, name="models")
app.add_typer(tools_app, name="tools")
app.add_typer(config_app, name="config")

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_config_path() -> Path | None:
    """Find config file in standard locations."""
    candidates = [
        Path.cwd() / "libre.yaml",
        Path.cwd() / "libre.yml",
        Path.home() / ".config" / "libre" / "config.yaml",
        Path.home() / ".libre" / "config.yaml",
    ]
    for p in candidates:
        if p.is_file():
            return p
    return None


def _load(
    profile: str | None = None,
    model: str | None = None,
    effort: str | None = None,
) -> LibreConfig:
    return load_config(
        _get_config_path(),
        profile=profile,
        cli_overrides={"chat.model": model, "chat.reasoning_effort": effort},
    )


def _build_tool_registry(cfg: LibreConfig):
    from libre.tools.registry import ToolRegistry

    registry = ToolRegistry()
    registry.load_plugins(
        enabled=cfg.plugins.enabled,
        allow_distributions=set(cfg.plugins.allow_distributions) if cfg.plugins.allow_distributions else None,
        allow_tools=set(cfg.plugins.allow_tools) if cfg.plugins.allow_tools else None,
    )
    return registry


def _setup_stack(cfg: LibreConfig):
    """Wire up provider, tools and orchestrator from config."""
    from libre.llm.providers.openai_compat import OpenAICompatProvider
    from libre.orchestrator.core import Orchestrator
    from libre.tools.dispatcher import ToolDispatcher

    provider = OpenAICompatProvider(
        url=cfg.provider.api_base,
        api_key=cfg.provider.resolve_api_key(),
        timeout=cfg.provider.timeout_seconds,
    )
    registry = _build_tool_registry(cfg)
    return Orchestrator(
        provider=provider,
        models=cfg.model_registry(),
        tools=registry,
        dispatcher=ToolDispatcher(registry, timeout=cfg.agent.tool_timeout_seconds),
        max_iterations=cfg.agent.max_iterations,
        idle_timeout=cfg.provider.idle_timeout_seconds,
        budget_policy=cfg.budget_policy,
        parallel_tools=cfg.agent.parallel_tools,
    )


@app.callback()
def main_options(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Libre - streaming chat client with tool calling."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def chat(
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model ID"),
    effort: Optional[str] = typer.Option(None, "--effort", "-e", help="Reasoning effort"),
):
    """Start an interactive chat session."""
    from libre.cli.chat import ChatHandler

    cfg = _load(profile, model, effort)

    async def _run():
        handler = ChatHandler(_setup_stack(cfg), cfg, console=console)
        await handler.run_loop()

    asyncio.run(_run())


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to send"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model ID"),
    effort: Optional[str] = typer.Option(None, "--effort", "-e", help="Reasoning effort"),
):
    """Send a single question and stream the answer."""
    from libre.cli.chat import ChatHandler

    cfg = _load(profile, model, effort)

    async def _run() -> bool:
        handler = ChatHandler(_setup_stack(cfg), cfg, console=console)
        await handler.handle_input(question)
        return handler.history != []

    if not asyncio.run(_run()):
        raise typer.Exit(1)


@models_app.command("list")
def models_list():
    """List known models and their capabilities."""
    from libre.cli.output import OutputFormatter

    cfg = _load()
    OutputFormatter(console).format_model_list(
        cfg.model_registry().list(), active=cfg.chat.model
    )


@models_app.command("info")
def models_info(model_id: str = typer.Argument(..., help="Model ID")):
    """Show capabilities for one model."""
    from libre.cli.output import OutputFormatter

    model = _load().model_registry().get(model_id)
    if not model:
        console.print(f"[red]Model not found:[/red] {model_id}")
        raise typer.Exit(1)
    OutputFormatter(console).format_model_info(model)


@tools_app.command("list")
def tools_list():
    """List registered tools."""
    from libre.cli.output import OutputFormatter

    registry = _build_tool_registry(_load())
    OutputFormatter(console).format_tool_list(registry.list())


@config_app.command("show")
def config_show(profile: Optional[str] = typer.Option(None, help="Config profile name")):
    """Show effective config."""
    from libre.cli.output import OutputFormatter

    cfg = _load(profile)
    OutputFormatter(console).format_config(cfg.to_dict())


@config_app.command("validate")
def config_validate(profile: Optional[str] = typer.Option(None, help="Config profile name")):
    """Validate config and the model catalogue."""
    config_path = _get_config_path()
    try:
        cfg = _load(profile)
        registry = cfg.model_registry()
        console.print("[green]Config is valid.[/green]")
        if config_path:
            console.print(f"  Loaded from: {config_path}")
        else:
            console.print("  [dim]No config file found, using defaults.[/dim]")
        console.print(f"  Endpoint: {cfg.provider.api_base}")
        console.print(f"  Model: {cfg.chat.model} ({len(registry)} in catalogue)")
        console.print(f"  Max tool iterations: {cfg.agent.max_iterations} ({cfg.agent.budget_policy})")
        if cfg.chat.model not in registry:
            console.print("  [yellow]Warning:[/yellow] model is not in the catalogue")
    except Exception as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """Show version."""
    console.print(f"libre-core v{__version__}")


def main():
    app()


if __name__ == "__main__":
    main()
