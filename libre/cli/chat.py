"""Interactive chat session handler."""

from __future__ import annotations

import asyncio
import signal

from rich.console import Console

from libre.cli.output import OutputFormatter
from libre.config import LibreConfig
from libre.llm.reasoning import ReasoningPolicyResolver
from libre.llm.types import Message, StreamChunk
from libre.orchestrator.core import Orchestrator


class ChatHandler:
    """
    Manages the interactive chat loop.

    Handles streaming output, inline commands and Ctrl-C cancellation of the
    running turn.  History lives in memory for the life of the loop.
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        config: LibreConfig,
        console: Console | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.config = config
        self.console = console or Console()
        self.formatter = OutputFormatter(self.console)
        self.history: list[Message] = []
        self._running = True

    @property
    def enabled_tools(self) -> list[str]:
        return self.config.enabled_tools(self.orchestrator.tools.names())

    async def handle_command(self, command: str) -> bool:
        """
        Handle inline commands. Returns True if the command was handled.
        """
        parts = command.strip().split(None, 1)
        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd == "/quit":
            self._running = False
            self.console.print("[dim]Goodbye.[/dim]")
            return True

        if cmd == "/clear":
            self.history.clear()
            self.console.print("  History cleared.")
            return True

        if cmd == "/tools":
            self.formatter.format_tool_list(self.orchestrator.tools.list())
            return True

        if cmd == "/models":
            self.formatter.format_model_list(
                self.orchestrator.models.list(), active=self.config.chat.model
            )
            return True

        if cmd == "/model":
            if not arg:
                self.console.print(f"  Active model: [bold]{self.config.chat.model}[/bold]")
            else:
                if arg not in self.orchestrator.models:
                    self.console.print(
                        f"  [yellow]Warning:[/yellow] {arg} is not in the catalogue; "
                        "assuming tool support and no reasoning controls."
                    )
                self.config.set_override("chat.model", arg)
                self.console.print(f"  Switched to model: [bold]{arg}[/bold]")
            return True

        if cmd == "/effort":
            if not arg:
                self.console.print(
                    f"  Reasoning effort: {self.config.chat.reasoning_effort or 'default'}"
                )
                return True
            descriptor = self.orchestrator.models.describe(self.config.chat.model)
            if not ReasoningPolicyResolver.is_valid_effort(descriptor, arg):
                self.console.print(
                    f"  [red]Error:[/red] {arg!r} is not a valid effort for {descriptor.id}"
                )
                return True
            self.config.set_override("chat.reasoning_effort", arg)
            self.console.print(f"  Reasoning effort set to: [bold]{arg}[/bold]")
            return True

        if cmd == "/help":
            self.console.print(
                "  [bold]Commands:[/bold]\n"
                "  /quit          - Exit the chat\n"
                "  /clear         - Forget the conversation so far\n"
                "  /model [ID]    - Show or switch the model\n"
                "  /models        - List known models\n"
                "  /effort [LVL]  - Show or set reasoning effort ('none' disables)\n"
                "  /tools         - List available tools\n"
                "  /help          - Show this help\n"
                "  Ctrl-C while a reply streams cancels it.\n"
            )
            return True

        return False

    async def handle_input(self, user_input: str) -> None:
        """Run one turn and stream the response to the console."""
        cancel = asyncio.Event()
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, cancel.set)
            installed = True
        except (NotImplementedError, RuntimeError):
            installed = False

        settings = self.config.turn_settings(tools=self.enabled_tools)
        in_reasoning = False
        try:
            async for chunk in self.orchestrator.run(
                user_input, self.history, settings, cancel=cancel
            ):
                if chunk.reasoning:
                    in_reasoning = True
                    self.console.print(chunk.reasoning, end="", style="dim", markup=False)
                if chunk.content:
                    if in_reasoning:
                        self.console.print()
                        in_reasoning = False
                    self.console.print(chunk.content, end="", markup=False)
                if chunk.tool_deltas:
                    for delta in chunk.tool_deltas:
                        if delta.name:
                            self.console.print(f"\n[dim]\\[tool: {delta.name}][/dim]")
                if chunk.usage:
                    self.console.print()
                    self.formatter.format_usage(chunk.usage)
                if chunk.done:
                    self._finish_turn(user_input, chunk)
        finally:
            if installed:
                loop.remove_signal_handler(signal.SIGINT)

        self.console.print()

    def _finish_turn(self, user_input: str, chunk: StreamChunk) -> None:
        if chunk.error:
            self.formatter.format_error(chunk.error)
            return
        if chunk.cancelled:
            self.console.print("\n[yellow]\\[stream canceled][/yellow]")
            return
        self.history.append(Message(role="user", content=user_input))
        self.history.extend(chunk.messages or [])

    async def run_loop(self) -> None:
        """Main interactive loop."""
        self.console.print(
            f"[bold]Libre[/bold] - {self.config.chat.model}\n"
            "[dim]Type /help for commands, /quit to exit.[/dim]\n"
        )

        while self._running:
            try:
                user_input = await asyncio.get_running_loop().run_in_executor(
                    None, lambda: input("you> ").strip()
                )
            except (EOFError, KeyboardInterrupt):
                self.console.print("\n[dim]Goodbye.[/dim]")
                break

            if not user_input:
                continue

            if user_input.startswith("/"):
                handled = await self.handle_command(user_input)
                if handled:
                    continue

            self.console.print("[dim]assistant>[/dim] ", end="")
            await self.handle_input(user_input)
