"""
Assembles streaming tool-call deltas into complete ToolCall objects.

Design goals:
  - Accumulate ``ToolCallDelta`` fragments keyed by ``index``; one pending
    entry per index, independent of every other index.
  - ``id``, ``name`` and ``type`` are only ever overwritten by a non-empty
    value.  Argument fragments are concatenated in arrival order.
  - Arguments are *not* parsed here.  They only form a valid JSON document
    once the stream has ended; parsing is the executor's job.
"""

from __future__ import annotations

from dataclasses import dataclass

from libre.llm.types import ToolCall, ToolCallDelta


@dataclass
class PendingToolCall:
    index: int
    id: str | None = None
    type: str = "function"
    function_name: str = ""
    arguments: str = ""


class ToolCallAssembler:
    """Buffers tool-call deltas for a single model response."""

    def __init__(self) -> None:
        self._pending: dict[int, PendingToolCall] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def apply(self, delta: ToolCallDelta) -> None:
        entry = self._pending.get(delta.index)
        if entry is None:
            entry = self._pending[delta.index] = PendingToolCall(index=delta.index)

        if delta.id:
            entry.id = delta.id
        if delta.type:
            entry.type = delta.type
        if delta.name:
            entry.function_name = delta.name
        if delta.arguments:
            entry.arguments += delta.arguments

    def snapshot(self) -> list[ToolCall]:
        """Return the accumulated calls in ascending index order."""
        return [
            ToolCall(
                id=entry.id or f"call_{idx}",
                name=entry.function_name.strip(),
                arguments=entry.arguments,
                type=entry.type,
            )
            for idx, entry in sorted(self._pending.items())
        ]

    def reset(self) -> None:
        """Discard all accumulated state."""
        self._pending.clear()

    def __len__(self) -> int:
        return len(self._pending)
