"""
Orchestrator core -- the agent loop that drives one user turn.

The orchestrator:
1. Builds a request envelope (history + in-turn messages + reasoning policy)
2. Streams the response through the liveness guard and frame decoder,
   forwarding every event to the caller as it arrives
3. Accumulates tool-call fragments for the response
4. If the model asked for tools, executes them and loops with the results
5. Stops when a response has no tool calls, or the iteration budget runs out

Only transport and upstream protocol errors abort a turn.  Broken tool
arguments and failing tools are folded back into the conversation as error
results the model can read on its next pass.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from libre.llm.errors import LLMError, StreamCancelled
from libre.llm.frames import decode_stream
from libre.llm.liveness import LivenessGuard
from libre.llm.models import ModelRegistry
from libre.llm.providers.base import Provider
from libre.llm.reasoning import ReasoningPolicyResolver, ReasoningResolution
from libre.llm.tool_call_assembler import ToolCallAssembler
from libre.llm.types import (
    Annotations,
    Attachment,
    ChunkError,
    ContentDelta,
    FinishReason,
    Message,
    ProtocolError,
    ReasoningDelta,
    RequestEnvelope,
    StreamChunk,
    StreamEvent,
    ToolCall,
    ToolCallDelta,
    Usage,
)
from libre.tools.base import ToolError
from libre.tools.dispatcher import ToolDispatcher
from libre.tools.registry import ToolRegistry
from libre.types import BudgetPolicy, ErrorCode, StopReason, TurnSettings

logger = logging.getLogger(__name__)

WEB_SEARCH_PLUGIN = {
    "id": "web",
    "search_prompt": "Here are some web search results that might be relevant: ",
}


@dataclass
class TurnState:
    """Per-turn bookkeeping.  Discarded when ``run`` returns."""

    max_iterations: int
    iteration: int = 0
    intermediate_messages: list[Message] = field(default_factory=list)


@dataclass
class _Response:
    """What one streamed model response produced."""

    assembler: ToolCallAssembler = field(default_factory=ToolCallAssembler)
    content: list[str] = field(default_factory=list)
    reasoning: list[str] = field(default_factory=list)
    finish_reason: str | None = None

    def assistant_message(self, tool_calls: list[ToolCall] | None = None) -> Message:
        return Message(
            role="assistant",
            content="".join(self.content),
            reasoning="".join(self.reasoning) or None,
            tool_calls=tool_calls or None,
        )


class Orchestrator:
    """
    Main agent loop.

    Parameters
    ----------
    provider : Provider
        Upstream transport.
    models : ModelRegistry
        Capability table used for tool support and reasoning policy.
    tools : ToolRegistry
        Registered tools.  Which ones a turn may use is decided per turn by
        ``TurnSettings.tools``.
    dispatcher : ToolDispatcher
        Executes tool calls.  Defaults to one built on *tools*.
    max_iterations : int
        Tool-call rounds per turn.  The counter is incremented before the
        check, so ``1`` means tools are never executed.
    idle_timeout : float
        Seconds without a stream chunk before the read is abandoned.
    budget_policy : BudgetPolicy
        ``DROP`` leaves tool calls pending at budget exhaustion out of the
        turn's messages; ``REPORT`` records them with an error result each.
    parallel_tools : bool
        Run a round's tool calls concurrently.  Results keep index order.
    """

    def __init__(
        self,
        provider: Provider,
        models: ModelRegistry,
        tools: ToolRegistry | None = None,
        dispatcher: ToolDispatcher | None = None,
        max_iterations: int = 4,
        idle_timeout: float = 60.0,
        budget_policy: BudgetPolicy = BudgetPolicy.DROP,
        parallel_tools: bool = False,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.provider = provider
        self.models = models
        self.resolver = ReasoningPolicyResolver(models)
        self.tools = tools or ToolRegistry()
        self.dispatcher = dispatcher or ToolDispatcher(self.tools)
        self.max_iterations = max_iterations
        self.guard = LivenessGuard(idle_timeout)
        self.budget_policy = budget_policy
        self.parallel_tools = parallel_tools

    async def run(
        self,
        query: str,
        history: list[Message],
        settings: TurnSettings,
        *,
        attachments: list[Attachment] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Run one turn and yield ``StreamChunk`` objects as they happen.

        The last chunk has ``done=True``.  On a normal finish it carries the
        ``stop_reason`` and the turn's new messages (tool rounds plus the
        final assistant answer, not the user query) for the caller to
        persist.  Setting *cancel* aborts the turn with a ``cancelled``
        chunk; transport and protocol failures end it with an ``error``
        chunk.
        """
        descriptor = self.models.describe(settings.model)
        resolution = self.resolver.resolve(descriptor, settings.reasoning_effort)
        tool_schemas = (
            self.tools.to_openai_schema(settings.tools) if settings.tools else []
        )
        use_tools = descriptor.supports_tools and bool(tool_schemas)
        if attachments and not descriptor.supports_vision:
            if any(a.kind == "image" for a in attachments):
                logger.warning("Model %s does not accept images", descriptor.id)

        base = self._base_messages(query, history, settings, attachments)
        state = TurnState(max_iterations=self.max_iterations)

        try:
            while True:
                if cancel is not None and cancel.is_set():
                    raise StreamCancelled()

                envelope = self._build_envelope(
                    settings,
                    resolution,
                    base + state.intermediate_messages,
                    tool_schemas if use_tools else None,
                )
                response = _Response()

                async with aclosing(self._pump(envelope, cancel)) as events:
                    async for event in events:
                        if isinstance(event, ProtocolError):
                            logger.warning(
                                "Upstream error %s: %s", event.kind, event.message
                            )
                            yield StreamChunk(
                                error=ChunkError(event.kind, event.message),
                                done=True,
                            )
                            return
                        self._track(response, event)
                        yield _event_to_chunk(event)

                calls = response.assembler.snapshot()
                if not calls or not use_tools:
                    if calls:
                        logger.warning(
                            "Ignoring %d tool call(s): tools are not enabled",
                            len(calls),
                        )
                    yield StreamChunk(
                        stop_reason=StopReason.COMPLETED,
                        messages=[
                            *state.intermediate_messages,
                            response.assistant_message(),
                        ],
                        done=True,
                    )
                    return

                state.iteration += 1
                if state.iteration >= state.max_iterations:
                    logger.warning(
                        "Iteration budget of %d reached with %d pending tool call(s)",
                        state.max_iterations,
                        len(calls),
                    )
                    yield self._budget_exhausted(state, response, calls)
                    return

                state.intermediate_messages.append(response.assistant_message(calls))
                results = await self._execute_tool_calls(
                    calls, base + state.intermediate_messages, cancel
                )
                state.intermediate_messages.extend(results)
        except StreamCancelled:
            logger.info("Turn cancelled after %d tool round(s)", state.iteration)
            yield StreamChunk(cancelled=True, done=True)
        except LLMError as exc:
            logger.warning("Turn aborted (%s): %s", exc.kind, exc.message)
            yield StreamChunk(error=ChunkError(exc.kind, exc.message), done=True)

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    @staticmethod
    def _base_messages(
        query: str,
        history: list[Message],
        settings: TurnSettings,
        attachments: list[Attachment] | None,
    ) -> list[Message]:
        messages: list[Message] = []
        if settings.system_prompt:
            messages.append(Message(role="system", content=settings.system_prompt))
        messages.extend(history)
        messages.append(
            Message(role="user", content=query, attachments=list(attachments or []))
        )
        return messages

    @staticmethod
    def _build_envelope(
        settings: TurnSettings,
        resolution: ReasoningResolution,
        messages: list[Message],
        tools: list[dict] | None,
    ) -> RequestEnvelope:
        return RequestEnvelope(
            model=resolution.alternate_model or settings.model,
            messages=list(messages),
            tools=tools or None,
            tool_choice="auto" if tools else None,
            temperature=settings.temperature,
            top_p=settings.top_p,
            seed=settings.seed,
            reasoning=resolution.params,
            plugins=[WEB_SEARCH_PLUGIN] if settings.web_search else None,
        )

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def _pump(
        self, envelope: RequestEnvelope, cancel: asyncio.Event | None
    ) -> AsyncIterator[StreamEvent]:
        chunks = self.guard.watch(self.provider.open_stream(envelope.to_body()), cancel)
        async with aclosing(chunks):
            async with aclosing(decode_stream(chunks)) as events:
                async for event in events:
                    yield event

    @staticmethod
    def _track(response: _Response, event: StreamEvent) -> None:
        if isinstance(event, ToolCallDelta):
            response.assembler.apply(event)
        elif isinstance(event, ContentDelta):
            response.content.append(event.text)
        elif isinstance(event, ReasoningDelta):
            response.reasoning.append(event.text)
        elif isinstance(event, FinishReason):
            response.finish_reason = event.reason

    # ------------------------------------------------------------------
    # Tool execution
    # ------------------------------------------------------------------

    async def _execute_tool_calls(
        self,
        calls: list[ToolCall],
        history: list[Message],
        cancel: asyncio.Event | None,
    ) -> list[Message]:
        if self.parallel_tools:
            if cancel is not None and cancel.is_set():
                raise StreamCancelled()
            return list(
                await asyncio.gather(
                    *(self._execute_tool_call(call, history) for call in calls)
                )
            )

        results: list[Message] = []
        for call in calls:
            if cancel is not None and cancel.is_set():
                raise StreamCancelled()
            results.append(await self._execute_tool_call(call, history))
        return results

    async def _execute_tool_call(
        self, call: ToolCall, history: list[Message]
    ) -> Message:
        try:
            arguments = json.loads(call.arguments or "{}")
        except json.JSONDecodeError as exc:
            logger.warning(
                "Tool call %s (%s) has invalid JSON arguments: %s",
                call.id,
                call.name,
                exc,
            )
            return tool_error_message(
                call, ErrorCode.INVALID_ARGUMENTS, f"Invalid JSON arguments: {exc}"
            )
        if not isinstance(arguments, dict):
            return tool_error_message(
                call,
                ErrorCode.INVALID_ARGUMENTS,
                "Tool arguments must be a JSON object",
            )

        try:
            result = await self.dispatcher.execute(call.name, arguments, history)
        except ToolError as exc:
            logger.warning("Tool call %s (%s) failed: %s", call.id, call.name, exc)
            return tool_error_message(call, exc.code, exc.message)
        return tool_result_message(call, result)

    def _budget_exhausted(
        self, state: TurnState, response: _Response, calls: list[ToolCall]
    ) -> StreamChunk:
        messages = list(state.intermediate_messages)
        if self.budget_policy is BudgetPolicy.REPORT:
            messages.append(response.assistant_message(calls))
            messages.extend(
                tool_error_message(
                    call,
                    ErrorCode.ITERATION_LIMIT,
                    f"Not executed: tool iteration limit of "
                    f"{state.max_iterations} reached",
                )
                for call in calls
            )
        else:
            messages.append(response.assistant_message())
        return StreamChunk(
            stop_reason=StopReason.ITERATION_LIMIT, messages=messages, done=True
        )


def tool_result_message(call: ToolCall, result: Any) -> Message:
    return Message(
        role="tool",
        content=json.dumps(result, default=str),
        tool_call_id=call.id,
        name=call.name,
    )


def tool_error_message(call: ToolCall, code: str, message: str) -> Message:
    return tool_result_message(call, {"error": message, "code": code})


def _event_to_chunk(event: StreamEvent) -> StreamChunk:
    if isinstance(event, ContentDelta):
        return StreamChunk(content=event.text)
    if isinstance(event, ReasoningDelta):
        return StreamChunk(reasoning=event.text)
    if isinstance(event, ToolCallDelta):
        return StreamChunk(tool_deltas=[event])
    if isinstance(event, FinishReason):
        return StreamChunk(finish_reason=event.reason)
    if isinstance(event, Usage):
        return StreamChunk(usage=event)
    if isinstance(event, Annotations):
        return StreamChunk(annotations=event.data)
    raise TypeError(f"Unexpected stream event: {event!r}")
