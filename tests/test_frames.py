"""Tests for the SSE frame decoder."""

from __future__ import annotations

import json
import logging

import pytest

from libre.llm.frames import FrameDecoder, decode_stream
from libre.llm.types import (
    Annotations,
    ContentDelta,
    FinishReason,
    ProtocolError,
    ReasoningDelta,
    ToolCallDelta,
    Usage,
)
from tests.mock_providers import (
    DONE,
    content_frame,
    finish_frame,
    sse,
    tool_frame,
    usage_frame,
)


async def _aiter(chunks):
    for chunk in chunks:
        yield chunk


async def _decode(chunks):
    return [event async for event in decode_stream(_aiter(chunks))]


class TestFraming:
    async def test_malformed_frame_is_skipped(self):
        events = await _decode(
            [content_frame("Hello"), b"data: {not json\n\n", content_frame(" world"), DONE]
        )
        assert events == [ContentDelta("Hello"), ContentDelta(" world")]

    async def test_partial_lines_are_buffered(self):
        raw = content_frame("Hello") + content_frame("!") + DONE
        chunks = [raw[i:i + 7] for i in range(0, len(raw), 7)]
        events = await _decode(chunks)
        assert events == [ContentDelta("Hello"), ContentDelta("!")]

    async def test_multibyte_characters_split_across_reads(self):
        payload = {"choices": [{"delta": {"content": "héllo ☃"}}]}
        raw = f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode()
        cut = raw.index("☃".encode()) + 1
        events = await _decode([raw[:cut], raw[cut:], DONE])
        assert events == [ContentDelta("héllo ☃")]

    async def test_done_ends_sequence(self):
        events = await _decode([content_frame("a"), DONE, content_frame("ignored")])
        assert events == [ContentDelta("a")]

    async def test_crlf_and_non_data_lines(self):
        raw = b": keep-alive\r\nevent: message\r\n" + content_frame("x").replace(b"\n", b"\r\n")
        events = await _decode([raw, DONE])
        assert events == [ContentDelta("x")]

    async def test_stream_without_done_just_ends(self):
        events = await _decode([content_frame("a")])
        assert events == [ContentDelta("a")]

    async def test_unterminated_last_line_is_flushed(self):
        events = await _decode([content_frame("a").rstrip(b"\n")])
        assert events == [ContentDelta("a")]

    async def test_non_object_payload_dropped(self):
        events = await _decode([b"data: [1, 2]\n\n", b'data: "x"\n\n', content_frame("ok"), DONE])
        assert events == [ContentDelta("ok")]


class TestWrongShape:
    """Valid JSON that is not shaped like a completion chunk is dropped whole."""

    @pytest.mark.parametrize(
        "payload",
        [
            {"choices": [None]},
            {"choices": "oops"},
            {"choices": [{"delta": "text"}]},
            {"choices": [{"delta": {"content": 42}}]},
            {"choices": [{"delta": {"tool_calls": ["x"]}}]},
            {"choices": [{"delta": {"tool_calls": {"index": 0}}}]},
            {"choices": [{"delta": {"tool_calls": [{"index": 0, "function": "f"}]}}]},
            {"choices": [{"delta": {"tool_calls": [{"index": None, "function": {"name": "t"}}]}}]},
            {"choices": [{"delta": {"tool_calls": [{"index": "0", "function": {"name": "t"}}]}}]},
            {"choices": [{"delta": {}, "finish_reason": 1}]},
            {"choices": [], "usage": [1, 2]},
            {"choices": [], "usage": {"prompt_tokens": "10", "completion_tokens": 5}},
        ],
    )
    async def test_dropped_between_good_frames(self, payload):
        events = await _decode([content_frame("a"), sse(payload), content_frame("b"), DONE])
        assert events == [ContentDelta("a"), ContentDelta("b")]

    async def test_drop_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="libre.llm.frames"):
            await _decode([sse({"choices": [None]}), DONE])
        assert "malformed" in caplog.text


class TestEvents:
    async def test_one_event_per_field_in_order(self):
        frame = sse(
            {
                "choices": [
                    {
                        "delta": {
                            "content": "answer",
                            "reasoning": "thinking",
                            "tool_calls": [
                                {"index": 0, "id": "c0", "type": "function",
                                 "function": {"name": "a", "arguments": "{"}},
                                {"index": 1, "function": {"arguments": "}"}},
                            ],
                            "annotations": [{"type": "url_citation"}],
                        },
                        "finish_reason": "tool_calls",
                    }
                ],
                "usage": {"prompt_tokens": 3, "completion_tokens": 4, "total_tokens": 7},
            }
        )
        events = await _decode([frame, DONE])
        assert events == [
            ContentDelta("answer"),
            ReasoningDelta("thinking"),
            ToolCallDelta(index=0, id="c0", name="a", arguments="{", type="function"),
            ToolCallDelta(index=1, id=None, name=None, arguments="}", type=None),
            FinishReason("tool_calls"),
            Usage(3, 4, 7),
            Annotations([{"type": "url_citation"}]),
        ]

    async def test_frames_are_not_coalesced(self):
        events = await _decode([content_frame("a"), content_frame("b"), DONE])
        assert events == [ContentDelta("a"), ContentDelta("b")]

    async def test_reasoning_content_alias(self):
        frame = sse({"choices": [{"delta": {"reasoning_content": "hmm"}}]})
        assert await _decode([frame, DONE]) == [ReasoningDelta("hmm")]

    async def test_usage_only_frame(self):
        events = await _decode([usage_frame(10, 5), DONE])
        assert events == [Usage(10, 5, 15)]

    async def test_usage_total_defaults_to_sum(self):
        frame = sse({"choices": [], "usage": {"prompt_tokens": 2, "completion_tokens": 3}})
        assert await _decode([frame, DONE]) == [Usage(2, 3, 5)]

    async def test_tool_frame_helper(self):
        events = await _decode([tool_frame(0, call_id="c", name="t", arguments="{}"), finish_frame("tool_calls"), DONE])
        assert events == [
            ToolCallDelta(index=0, id="c", name="t", arguments="{}", type="function"),
            FinishReason("tool_calls"),
        ]


class TestProtocolErrors:
    async def test_error_frame_terminates(self):
        err = sse({"error": {"type": "rate_limit", "message": "slow down", "code": 429}})
        events = await _decode([content_frame("a"), err, content_frame("never"), DONE])
        assert events == [ContentDelta("a"), ProtocolError("rate_limit", "slow down")]

    async def test_error_kind_falls_back_to_code(self):
        err = sse({"error": {"code": 502, "message": "bad gateway"}})
        assert await _decode([err]) == [ProtocolError("502", "bad gateway")]

    async def test_string_error(self):
        err = sse({"error": "boom"})
        assert await _decode([err]) == [ProtocolError("APIError", "boom")]


class TestPushDecoder:
    def test_feed_after_finish_is_ignored(self):
        decoder = FrameDecoder()
        assert decoder.feed(DONE) == []
        assert decoder.finished
        assert decoder.feed(content_frame("late")) == []
        assert decoder.close() == []
