"""Fragment normalization and the caller-facing unified event sequence.

Covers:
- start-first / single-terminal contract for every dialect
- malformed chunks and transport failures surface as one error event
- accumulation of text, tool calls, finish reason and usage
"""
from __future__ import annotations

import asyncio
import json

import pytest

from unichat.base.errors import ErrorCode, ProviderError
from unichat.base.models import FinishReason, Role, Usage
from unichat.base.streaming import (
    Dialect,
    StreamEvent,
    StreamEventType,
    ToolCallDelta,
    accumulate_stream,
    aiter_unified_events,
    anormalize_stream,
    iter_unified_events,
    normalize_stream,
    unify_stream,
)
from unichat.base.streaming.accumulator import RAW_ARGUMENTS_KEY


def sse(obj) -> str:
    return f"data: {json.dumps(obj)}\n\n"


def _openai(text=None, finish=None, usage=None):
    chunk = {"choices": [{"index": 0, "delta": {"content": text} if text else {}, "finish_reason": finish}]}
    if usage is not None:
        chunk["usage"] = usage
    return sse(chunk)


OPENAI_HELLO = [
    _openai("Hel"),
    _openai("lo"),
    _openai(finish="stop", usage={"prompt_tokens": 10, "completion_tokens": 5, "prompt_tokens_details": {"cached_tokens": 2}}),
    "data: [DONE]\n\n",
]

ANTHROPIC_HELLO = [
    "event: message_start\n",
    sse({"type": "message_start", "message": {"usage": {"input_tokens": 10, "output_tokens": 1}}}),
    sse({"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}}),
    sse({"type": "ping"}),
    sse({"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "Hel"}}),
    sse({"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "lo"}}),
    sse({"type": "content_block_stop", "index": 0}),
    sse({"type": "message_delta", "delta": {"stop_reason": "end_turn"}, "usage": {"output_tokens": 5}}),
    sse({"type": "message_stop"}),
]

GEMINI_HELLO = [
    sse({"candidates": [{"content": {"parts": [{"text": "Hel"}]}}]}),
    sse(
        {
            "candidates": [{"content": {"parts": [{"text": "lo"}]}, "finishReason": "STOP"}],
            "usageMetadata": {"promptTokenCount": 10, "candidatesTokenCount": 5},
        }
    ),
]


def _assert_contract(events):
    types = [e.type for e in events]
    assert types[0] is StreamEventType.START  # nosec B101
    assert types.count(StreamEventType.START) == 1  # nosec B101
    terminals = [i for i, e in enumerate(events) if e.is_terminal]
    assert terminals == [len(events) - 1]  # nosec B101


def test_openai_raw_stream_starts_and_ends_with_done():
    events = list(normalize_stream(OPENAI_HELLO, Dialect.OPENAI, model="gpt-4o-mini"))
    assert events[0].type is StreamEventType.START  # nosec B101
    assert events[0].metadata == {"dialect": "openai", "model": "gpt-4o-mini"}  # nosec B101
    assert [e.text for e in events if e.type is StreamEventType.TEXT_DELTA] == ["Hel", "lo"]  # nosec B101
    assert events[-1].type is StreamEventType.DONE  # nosec B101


@pytest.mark.parametrize(
    ("dialect", "fragments", "usage"),
    [
        (Dialect.OPENAI, OPENAI_HELLO, Usage(10, 5, 2)),
        (Dialect.ANTHROPIC, ANTHROPIC_HELLO, Usage(10, 5)),
        (Dialect.GEMINI, GEMINI_HELLO, Usage(10, 5)),
    ],
)
def test_every_dialect_unifies_to_same_shape(dialect, fragments, usage):
    events = list(iter_unified_events(fragments, dialect))
    _assert_contract(events)
    assert [e.type for e in events] == [  # nosec B101
        StreamEventType.START,
        StreamEventType.TEXT_DELTA,
        StreamEventType.TEXT_DELTA,
        StreamEventType.DONE,
    ]
    done = events[-1]
    assert done.finish_reason is FinishReason.STOP  # nosec B101
    assert done.usage == usage  # nosec B101
    assert "interim" not in done.metadata  # nosec B101


def test_fragment_boundaries_do_not_change_events():
    whole = "".join(OPENAI_HELLO)
    expected = [e.to_dict() for e in iter_unified_events([whole], "openai")]
    for cut in range(0, len(whole), 7):
        pieces = [whole[:cut].encode(), whole[cut:].encode()]
        assert [e.to_dict() for e in iter_unified_events(pieces, "openai")] == expected  # nosec B101


def test_malformed_chunk_yields_single_error_and_stops():
    fragments = [_openai("Hel"), "data: {not json}\n\n", _openai("never")]
    events = list(normalize_stream(fragments, "openai"))
    assert [e.type for e in events] == [  # nosec B101
        StreamEventType.START,
        StreamEventType.TEXT_DELTA,
        StreamEventType.ERROR,
    ]
    assert events[-1].error.code is ErrorCode.MALFORMED_CHUNK  # nosec B101


def test_non_object_payload_is_malformed():
    events = list(normalize_stream(["data: [1, 2]\n\n"], "gemini"))
    assert events[-1].error.code is ErrorCode.MALFORMED_CHUNK  # nosec B101


def test_deeply_nested_payload_is_malformed_not_raised():
    fragments = [_openai("Hel"), "data: " + "[" * 200000 + "\n\n", _openai("never")]
    events = list(normalize_stream(fragments, "openai"))
    assert [e.type for e in events] == [  # nosec B101
        StreamEventType.START,
        StreamEventType.TEXT_DELTA,
        StreamEventType.ERROR,
    ]
    assert events[-1].error.code is ErrorCode.MALFORMED_CHUNK  # nosec B101
    assert "nested too deeply" in events[-1].error.message  # nosec B101

    unified = list(iter_unified_events(fragments, "openai"))
    _assert_contract(unified)
    assert unified[-1].error.code is ErrorCode.MALFORMED_CHUNK  # nosec B101


def test_deeply_nested_object_inside_chunk_is_malformed():
    nested = "{" + '"a":{' * 100000 + "}" * 100000 + "}"
    events = list(normalize_stream([f"data: {nested}\n\n"], "anthropic"))
    assert [e.type for e in events] == [StreamEventType.START, StreamEventType.ERROR]  # nosec B101
    assert events[-1].error.code is ErrorCode.MALFORMED_CHUNK  # nosec B101


@pytest.mark.parametrize(
    ("dialect", "fragments"),
    [
        (Dialect.OPENAI, OPENAI_HELLO),
        (Dialect.ANTHROPIC, ANTHROPIC_HELLO),
        (Dialect.GEMINI, GEMINI_HELLO),
    ],
)
def test_raw_stream_has_single_terminal_event(dialect, fragments):
    events = list(normalize_stream(fragments, dialect))
    _assert_contract(events)
    assert events[-1].type is StreamEventType.DONE  # nosec B101
    assert events[-1].finish_reason is FinishReason.STOP  # nosec B101
    assert "interim" not in events[-1].metadata  # nosec B101


def test_raw_openai_final_done_folds_finish_and_usage():
    events = list(normalize_stream(OPENAI_HELLO, "openai"))
    dones = [e for e in events if e.type is StreamEventType.DONE]
    assert [d.is_interim for d in dones] == [True, False]  # nosec B101
    assert events[-1].usage == Usage(10, 5, 2)  # nosec B101


def test_raw_anthropic_final_done_merges_start_and_delta_usage():
    events = list(normalize_stream(ANTHROPIC_HELLO, "anthropic"))
    assert events[-1].usage == Usage(10, 5)  # nosec B101
    assert events[-1].finish_reason is FinishReason.STOP  # nosec B101


def test_raw_gemini_stream_ends_at_eof_with_usage_from_text_chunks():
    fragments = [
        sse({"candidates": [{"content": {"parts": [{"text": "Hel"}]}}], "usageMetadata": {"promptTokenCount": 7}}),
        sse({"candidates": [{"content": {"parts": [{"text": "lo"}]}}], "usageMetadata": {"candidatesTokenCount": 2}}),
    ]
    events = list(normalize_stream(fragments, "gemini"))
    _assert_contract(events)
    assert events[-1].usage == Usage(prompt_tokens=7, completion_tokens=2)  # nosec B101
    assert events[-1].finish_reason is None  # nosec B101
    assert accumulate_stream(events).finish_reason is FinishReason.STOP  # nosec B101


def test_events_after_terminal_done_are_ignored():
    raw = [
        StreamEvent.text_delta("a"),
        StreamEvent.done(FinishReason.STOP),
        StreamEvent.text_delta("late"),
    ]
    assert accumulate_stream(raw).text == "a"  # nosec B101
    events = list(unify_stream(raw))
    assert [e.text for e in events if e.text] == ["a"]  # nosec B101
    _assert_contract(events)


def test_in_band_error_ends_stream():
    fragments = [
        sse({"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "partial"}}),
        sse({"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}),
        sse({"type": "message_stop"}),
    ]
    events = list(iter_unified_events(fragments, "anthropic"))
    _assert_contract(events)
    assert events[-1].error.code is ErrorCode.UNAVAILABLE  # nosec B101
    assert events[1].text == "partial"  # nosec B101


def test_transport_failure_becomes_classified_error():
    def source():
        yield _openai("Hel")
        raise TimeoutError("read timed out")

    events = list(iter_unified_events(source(), "openai"))
    _assert_contract(events)
    assert events[1].text == "Hel"  # nosec B101
    assert events[-1].type is StreamEventType.ERROR  # nosec B101
    assert events[-1].error.code is ErrorCode.TIMEOUT  # nosec B101
    assert events[-1].error.retryable  # nosec B101


def test_exhausted_stream_without_terminal_gets_synthesized_done():
    events = list(iter_unified_events([sse({"candidates": [{"content": {"parts": [{"text": "cut"}]}}]})], "gemini"))
    _assert_contract(events)
    assert events[-1].finish_reason is FinishReason.STOP  # nosec B101


def test_unterminated_final_line_is_decoded():
    events = list(normalize_stream(['data: {"choices": [{"delta": {"content": "tail"}}]}'], "openai"))
    assert [e.text for e in events if e.text] == ["tail"]  # nosec B101


def test_unify_synthesizes_start_and_collapses_done():
    raw = [
        StreamEvent.text_delta("a"),
        StreamEvent.done(None, Usage(prompt_tokens=3), interim=True),
        StreamEvent.done(FinishReason.MAX_TOKENS, Usage(completion_tokens=4)),
        StreamEvent.done(),
    ]
    events = list(unify_stream(raw))
    assert [e.type for e in events] == [  # nosec B101
        StreamEventType.START,
        StreamEventType.TEXT_DELTA,
        StreamEventType.DONE,
    ]
    assert events[-1].finish_reason is FinishReason.MAX_TOKENS  # nosec B101
    assert events[-1].usage == Usage(prompt_tokens=3, completion_tokens=4)  # nosec B101


def test_unify_of_empty_sequence():
    events = list(unify_stream([]))
    assert [e.type for e in events] == [StreamEventType.START, StreamEventType.DONE]  # nosec B101


def test_accumulate_openai_tool_calls():
    def call(index, fragment, **extra):
        fn = {"arguments": fragment}
        if "name" in extra:
            fn["name"] = extra["name"]
        entry = {"index": index, "function": fn}
        if "id" in extra:
            entry["id"] = extra["id"]
        return sse({"choices": [{"index": 0, "delta": {"tool_calls": [entry]}}]})

    fragments = [
        call(0, '{"city":', id="call_a", name="get_weather"),
        call(1, "", id="call_b", name="get_time"),
        call(0, ' "Paris"}'),
        call(1, "not json"),
        _openai(finish="tool_calls"),
        "data: [DONE]\n\n",
    ]
    result = accumulate_stream(normalize_stream(fragments, "openai"))
    assert result.ok  # nosec B101
    assert result.finish_reason is FinishReason.TOOL_CALLS  # nosec B101
    first, second = result.tool_calls
    assert (first.id, first.name, dict(first.arguments)) == ("call_a", "get_weather", {"city": "Paris"})  # nosec B101
    assert second.arguments == {RAW_ARGUMENTS_KEY: "not json"}  # nosec B101

    message = result.to_message()
    assert message.role is Role.ASSISTANT  # nosec B101
    assert message.tool_calls == result.tool_calls  # nosec B101


def test_accumulate_gemini_whole_calls_across_chunks():
    fragments = [
        sse({"candidates": [{"content": {"parts": [{"functionCall": {"name": "a", "args": {"x": 1}}}]}}]}),
        sse({"candidates": [{"content": {"parts": [{"functionCall": {"name": "b", "args": {}}}]}, "finishReason": "STOP"}]}),
    ]
    result = accumulate_stream(normalize_stream(fragments, "gemini"))
    assert [c.name for c in result.tool_calls] == ["a", "b"]  # nosec B101
    assert [c.id for c in result.tool_calls] == ["call_0", "call_1"]  # nosec B101


def test_accumulate_anthropic_tool_use():
    fragments = [
        sse({"type": "content_block_start", "index": 0, "content_block": {"type": "tool_use", "id": "toolu_1", "name": "lookup", "input": {}}}),
        sse({"type": "content_block_delta", "index": 0, "delta": {"type": "input_json_delta", "partial_json": '{"q": '}}),
        sse({"type": "content_block_delta", "index": 0, "delta": {"type": "input_json_delta", "partial_json": '"x"}'}}),
        sse({"type": "message_delta", "delta": {"stop_reason": "tool_use"}, "usage": {"output_tokens": 9}}),
        sse({"type": "message_stop"}),
    ]
    result = accumulate_stream(normalize_stream(fragments, "anthropic"))
    (call,) = result.tool_calls
    assert (call.id, call.name, dict(call.arguments)) == ("toolu_1", "lookup", {"q": "x"})  # nosec B101
    assert result.finish_reason is FinishReason.TOOL_CALLS  # nosec B101
    assert result.usage == Usage(completion_tokens=9)  # nosec B101


def test_accumulate_keeps_first_error():
    events = [
        StreamEvent.start(),
        StreamEvent.text_delta("partial"),
        StreamEvent.failure(_error(ErrorCode.TIMEOUT)),
        StreamEvent.text_delta("ignored"),
    ]
    result = accumulate_stream(events)
    assert not result.ok  # nosec B101
    assert result.text == "partial"  # nosec B101
    assert result.error.code is ErrorCode.TIMEOUT  # nosec B101
    assert result.finish_reason is None  # nosec B101


def _error(code):
    return ProviderError(code=code, message="boom", provider="test")


def test_tool_call_without_id_or_name_gets_fallbacks():
    events = [StreamEvent.tool_call_delta(ToolCallDelta(index=2, arguments_fragment="{}"))]
    (call,) = accumulate_stream(events).tool_calls
    assert call.id == "call_2"  # nosec B101
    assert call.name == "unknown"  # nosec B101


# ---------------------------------------------------------------------- async
async def _agen(items):
    for item in items:
        await asyncio.sleep(0)
        yield item


def test_async_normalizer_matches_sync():
    async def run():
        return [e.to_dict() async for e in anormalize_stream(_agen(ANTHROPIC_HELLO), "anthropic")]

    expected = [e.to_dict() for e in normalize_stream(ANTHROPIC_HELLO, "anthropic")]
    assert asyncio.run(run()) == expected  # nosec B101


def test_async_unified_events_and_transport_failure():
    async def failing():
        yield _openai("Hi")
        raise ConnectionResetError("connection reset by peer")

    async def run():
        return [e async for e in aiter_unified_events(failing(), "openai")]

    events = asyncio.run(run())
    _assert_contract(events)
    assert events[-1].error.code is ErrorCode.TRANSIENT  # nosec B101


def test_async_cancellation_propagates():
    async def slow():
        yield _openai("Hi")
        await asyncio.sleep(10)
        yield _openai("never")

    async def run():
        async def consume():
            return [e async for e in aiter_unified_events(slow(), "openai")]

        task = asyncio.ensure_future(consume())
        await asyncio.sleep(0.01)
        task.cancel()
        await task

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(run())


def test_bare_delta_payloads_from_compatible_proxies():
    fragments = ['data: {"delta":"He"}\n', 'data: {"delta":"llo"}\n', "data: [DONE]\n"]
    events = list(normalize_stream(fragments, "openai"))
    assert [e.type for e in events] == [  # nosec B101
        StreamEventType.START,
        StreamEventType.TEXT_DELTA,
        StreamEventType.TEXT_DELTA,
        StreamEventType.DONE,
    ]
    assert accumulate_stream(events).text == "Hello"  # nosec B101
