"""Tests for libre.llm.tool_call_assembler.ToolCallAssembler."""

from __future__ import annotations

import json

from libre.llm.tool_call_assembler import ToolCallAssembler
from libre.llm.types import ToolCallDelta


class TestSingleToolCall:
    """Assemble a single tool call from incremental deltas."""

    def test_basic_assembly(self):
        asm = ToolCallAssembler()

        asm.apply(ToolCallDelta(index=0, id="call_1", name="read_file"))
        asm.apply(ToolCallDelta(index=0, arguments='{"path": '))
        asm.apply(ToolCallDelta(index=0, arguments='"/etc/hosts"}'))

        calls = asm.snapshot()
        assert len(calls) == 1
        tc = calls[0]
        assert tc.id == "call_1"
        assert tc.name == "read_file"
        assert tc.type == "function"
        assert json.loads(tc.arguments) == {"path": "/etc/hosts"}

    def test_fragments_concatenate_to_provider_json(self):
        """Arguments concatenated in arrival order parse like the whole buffer."""
        full = json.dumps({"query": "weather in Zürich", "days": [1, 2, 3], "x": {"y": None}})
        asm = ToolCallAssembler()
        asm.apply(ToolCallDelta(index=0, id="c", name="search"))
        for i in range(0, len(full), 3):
            asm.apply(ToolCallDelta(index=0, arguments=full[i:i + 3]))

        [call] = asm.snapshot()
        assert call.arguments == full
        assert json.loads(call.arguments) == json.loads(full)

    def test_partial_arguments_are_not_parsed(self):
        asm = ToolCallAssembler()
        asm.apply(ToolCallDelta(index=0, id="c", name="t", arguments='{"a": '))
        [call] = asm.snapshot()
        assert call.arguments == '{"a": '

    def test_id_and_name_not_cleared_by_empty_values(self):
        asm = ToolCallAssembler()
        asm.apply(ToolCallDelta(index=0, id="call_1", name="ping"))
        asm.apply(ToolCallDelta(index=0, id=None, name=None, arguments="{}"))
        asm.apply(ToolCallDelta(index=0, id="", name=""))

        [call] = asm.snapshot()
        assert call.id == "call_1"
        assert call.name == "ping"

    def test_non_empty_values_overwrite(self):
        asm = ToolCallAssembler()
        asm.apply(ToolCallDelta(index=0, id="tmp", name="old"))
        asm.apply(ToolCallDelta(index=0, id="final", name="new"))

        [call] = asm.snapshot()
        assert call.id == "final"
        assert call.name == "new"

    def test_missing_id_gets_positional_fallback(self):
        asm = ToolCallAssembler()
        asm.apply(ToolCallDelta(index=3, name="ping", arguments="{}"))
        [call] = asm.snapshot()
        assert call.id == "call_3"


class TestMultipleToolCalls:
    """Two or more tool calls assembled in parallel (different index)."""

    def test_interleaved_calls_stay_independent(self):
        asm = ToolCallAssembler()

        asm.apply(ToolCallDelta(index=0, id="c0", name="alpha"))
        asm.apply(ToolCallDelta(index=1, id="c1", name="beta"))
        asm.apply(ToolCallDelta(index=0, arguments='{"x": '))
        asm.apply(ToolCallDelta(index=1, arguments='{"y": '))
        asm.apply(ToolCallDelta(index=1, arguments="2}"))
        asm.apply(ToolCallDelta(index=0, arguments="1}"))

        c0, c1 = asm.snapshot()
        assert (c0.name, json.loads(c0.arguments)) == ("alpha", {"x": 1})
        assert (c1.name, json.loads(c1.arguments)) == ("beta", {"y": 2})

    def test_one_entry_per_index(self):
        asm = ToolCallAssembler()
        for _ in range(5):
            asm.apply(ToolCallDelta(index=0, arguments="a"))
            asm.apply(ToolCallDelta(index=1, arguments="b"))
        assert len(asm) == 2

    def test_snapshot_sorted_by_index(self):
        asm = ToolCallAssembler()
        asm.apply(ToolCallDelta(index=2, id="c2", name="t2"))
        asm.apply(ToolCallDelta(index=0, id="c0", name="t0"))
        asm.apply(ToolCallDelta(index=1, id="c1", name="t1"))

        assert [c.id for c in asm.snapshot()] == ["c0", "c1", "c2"]


class TestReset:
    def test_reset_clears_state(self):
        asm = ToolCallAssembler()
        asm.apply(ToolCallDelta(index=0, id="c", name="t"))
        asm.reset()
        assert asm.snapshot() == []
        assert len(asm) == 0
