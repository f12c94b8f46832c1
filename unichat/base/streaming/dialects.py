"""Per-dialect chunk decoders.

Each decoder is a pure function from one decoded JSON chunk to the list of
unified events it carries (possibly empty, possibly several: an OpenAI chunk
can hold a final text delta, a finish reason and usage at once). Dispatch is a
lookup on :class:`Dialect`; there is no decoder class hierarchy.

Dialect notes
-------------
OPENAI
    ``choices[0].delta.content`` text, ``delta.tool_calls[*]`` fragments,
    non-null ``finish_reason``, optional ``usage`` (often on a trailing chunk
    with empty ``choices``). The stream ends with the literal ``[DONE]``
    payload, which is never JSON-decoded.
ANTHROPIC
    Typed envelopes discriminated by ``type``: ``message_start``,
    ``content_block_start``, ``content_block_delta``, ``message_delta``,
    ``message_stop``, ``ping``, ``error``.
GEMINI
    ``candidates[0].content.parts`` and ``candidates[0].finishReason``. A chunk
    without candidates is either "nothing yet" or, when a ``blockReason`` is
    present, a safety block reported as ``done`` with ``content_filter``.

A ``done`` built from a chunk in the middle of the stream (finish reasons,
usage reports, Anthropic ``message_start`` / ``message_delta``) is marked
``interim``. Only the OpenAI ``[DONE]`` sentinel and Anthropic
``message_stop`` end a stream; Gemini streams end when the fragments run out.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..errors_parts.classification import classify_provider_error_type, status_to_code
from ..errors_parts.error_code import RETRYABLE_CODES, ErrorCode
from ..errors_parts.provider_error import ProviderError
from ..models_parts.enums import FinishReason
from ..tokens.extraction import extract_anthropic_usage, extract_gemini_usage, extract_openai_usage
from .events import StreamEvent, ToolCallDelta

DONE_SENTINEL = "[DONE]"

OPENAI_FINISH_REASONS: Dict[str, FinishReason] = {
    "stop": FinishReason.STOP,
    "length": FinishReason.MAX_TOKENS,
    "content_filter": FinishReason.CONTENT_FILTER,
    "tool_calls": FinishReason.TOOL_CALLS,
    "function_call": FinishReason.TOOL_CALLS,
}

ANTHROPIC_STOP_REASONS: Dict[str, FinishReason] = {
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "max_tokens": FinishReason.MAX_TOKENS,
    "tool_use": FinishReason.TOOL_CALLS,
    "refusal": FinishReason.CONTENT_FILTER,
}

GEMINI_FINISH_REASONS: Dict[str, FinishReason] = {
    "STOP": FinishReason.STOP,
    "MAX_TOKENS": FinishReason.MAX_TOKENS,
    "SAFETY": FinishReason.CONTENT_FILTER,
    "RECITATION": FinishReason.CONTENT_FILTER,
    "BLOCKLIST": FinishReason.CONTENT_FILTER,
    "PROHIBITED_CONTENT": FinishReason.CONTENT_FILTER,
    "FUNCTION_CALL": FinishReason.TOOL_CALLS,
}


def _map_reason(table: Mapping[str, FinishReason], value: Any) -> Optional[FinishReason]:
    if value is None or value == "":
        return None
    return table.get(str(value), FinishReason.UNKNOWN)


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _error_event(provider: str, error: Any, raw: Mapping[str, Any]) -> StreamEvent:
    """Build an error event from an in-band provider error object."""
    err = _as_mapping(error)
    message = str(err.get("message") or error or "provider error")
    status = err.get("code")
    if isinstance(status, int) and 100 <= status < 600:
        code = status_to_code(status)
        if err.get("status"):
            by_type = classify_provider_error_type(str(err.get("status")))
            if by_type is not ErrorCode.UNKNOWN:
                code = by_type
    else:
        code = classify_provider_error_type(err.get("type") or err.get("status") or status, message)
    return StreamEvent.failure(
        ProviderError(
            code=code,
            message=message,
            provider=provider,
            retryable=code in RETRYABLE_CODES,
            raw=dict(raw),
        )
    )


# --------------------------------------------------------------------- openai
def decode_openai(chunk: Mapping[str, Any]) -> List[StreamEvent]:
    if chunk.get("error"):
        return [_error_event("openai", chunk["error"], chunk)]
    events: List[StreamEvent] = []
    # lenient top-level delta string used by simple OpenAI-compatible proxies
    top_delta = chunk.get("delta")
    if isinstance(top_delta, str) and top_delta:
        events.append(StreamEvent.text_delta(top_delta))

    finish: Optional[FinishReason] = None
    choices = chunk.get("choices")
    if isinstance(choices, list) and choices:
        choice = _as_mapping(choices[0])
        delta = _as_mapping(choice.get("delta"))
        content = delta.get("content")
        if isinstance(content, str) and content:
            events.append(StreamEvent.text_delta(content))
        tool_calls = delta.get("tool_calls")
        if isinstance(tool_calls, list):
            for position, raw_call in enumerate(tool_calls):
                call = _as_mapping(raw_call)
                fn = _as_mapping(call.get("function"))
                index = call.get("index")
                events.append(
                    StreamEvent.tool_call_delta(
                        ToolCallDelta(
                            index=index if isinstance(index, int) else position,
                            id=call.get("id") or None,
                            name=fn.get("name") or None,
                            arguments_fragment=fn.get("arguments") or None,
                        )
                    )
                )
        finish = _map_reason(OPENAI_FINISH_REASONS, choice.get("finish_reason"))

    usage = extract_openai_usage(chunk)
    if finish is not None or usage is not None:
        events.append(StreamEvent.done(finish, usage, interim=True))
    return events


# ------------------------------------------------------------------ anthropic
def decode_anthropic(event: Mapping[str, Any]) -> List[StreamEvent]:
    kind = event.get("type")
    if kind == "content_block_delta":
        delta = _as_mapping(event.get("delta"))
        delta_type = delta.get("type")
        if delta_type == "text_delta":
            text = delta.get("text")
            return [StreamEvent.text_delta(text)] if isinstance(text, str) and text else []
        if delta_type == "input_json_delta":
            fragment = delta.get("partial_json")
            if not fragment:
                return []
            return [
                StreamEvent.tool_call_delta(
                    ToolCallDelta(index=int(event.get("index") or 0), arguments_fragment=str(fragment))
                )
            ]
        return []
    if kind == "content_block_start":
        block = _as_mapping(event.get("content_block"))
        if block.get("type") == "tool_use":
            raw_input = block.get("input")
            return [
                StreamEvent.tool_call_delta(
                    ToolCallDelta(
                        index=int(event.get("index") or 0),
                        id=block.get("id") or None,
                        name=block.get("name") or None,
                        arguments=dict(raw_input) if isinstance(raw_input, Mapping) and raw_input else None,
                    )
                )
            ]
        text = block.get("text")
        if block.get("type") == "text" and isinstance(text, str) and text:
            return [StreamEvent.text_delta(text)]
        return []
    if kind == "message_start":
        usage = extract_anthropic_usage(event)
        return [StreamEvent.done(None, usage, interim=True)] if usage is not None else []
    if kind == "message_delta":
        delta = _as_mapping(event.get("delta"))
        finish = _map_reason(ANTHROPIC_STOP_REASONS, delta.get("stop_reason"))
        return [StreamEvent.done(finish, extract_anthropic_usage(event), interim=True)]
    if kind == "message_stop":
        return [StreamEvent.done()]
    if kind == "error":
        return [_error_event("anthropic", event.get("error"), event)]
    # ping, content_block_stop and unknown envelope types carry nothing
    return []


# --------------------------------------------------------------------- gemini
def decode_gemini(chunk: Mapping[str, Any]) -> List[StreamEvent]:
    if chunk.get("error"):
        return [_error_event("gemini", chunk["error"], chunk)]
    usage = extract_gemini_usage(chunk)
    candidates = chunk.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        feedback = _as_mapping(chunk.get("promptFeedback"))
        block_reason = feedback.get("blockReason") or chunk.get("blockReason")
        if block_reason:
            return [
                StreamEvent.done(
                    FinishReason.CONTENT_FILTER,
                    usage,
                    interim=True,
                    blocked=True,
                    block_reason=str(block_reason),
                )
            ]
        return [StreamEvent.done(None, usage, interim=True)] if usage is not None else []

    candidate = _as_mapping(candidates[0])
    events: List[StreamEvent] = []
    parts = _as_mapping(candidate.get("content")).get("parts")
    call_index = 0
    if isinstance(parts, list):
        for raw_part in parts:
            part = _as_mapping(raw_part)
            text = part.get("text")
            if isinstance(text, str) and text and not part.get("thought"):
                events.append(StreamEvent.text_delta(text))
            call = part.get("functionCall")
            if isinstance(call, Mapping):
                args = call.get("args")
                events.append(
                    StreamEvent.tool_call_delta(
                        ToolCallDelta(
                            index=call_index,
                            id=call.get("id") or None,
                            name=call.get("name") or None,
                            arguments=dict(args) if isinstance(args, Mapping) else {},
                        )
                    )
                )
                call_index += 1

    finish = _map_reason(GEMINI_FINISH_REASONS, candidate.get("finishReason"))
    if finish is not None or usage is not None:
        events.append(StreamEvent.done(finish, usage, interim=True))
    return events


ChunkDecoder = Callable[[Mapping[str, Any]], List[StreamEvent]]


class Dialect(str, Enum):
    """Streaming wire dialect."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"

    @property
    def sentinel(self) -> Optional[str]:
        """Literal end-of-stream payload, when the dialect has one."""
        return DONE_SENTINEL if self is Dialect.OPENAI else None

    @property
    def ends_at_eof(self) -> bool:
        """True when the stream has no end marker and simply stops."""
        return self is Dialect.GEMINI

    def decode(self, chunk: Mapping[str, Any]) -> List[StreamEvent]:
        return DECODERS[self](chunk)


DECODERS: Dict[Dialect, ChunkDecoder] = {
    Dialect.OPENAI: decode_openai,
    Dialect.ANTHROPIC: decode_anthropic,
    Dialect.GEMINI: decode_gemini,
}


def coerce_dialect(value: "Dialect | str") -> Dialect:
    if isinstance(value, Dialect):
        return value
    try:
        return Dialect(str(value).strip().lower())
    except ValueError as exc:
        raise ValueError(f"unknown dialect: {value!r}") from exc


__all__ = [
    "DONE_SENTINEL",
    "Dialect",
    "DECODERS",
    "ChunkDecoder",
    "coerce_dialect",
    "decode_openai",
    "decode_anthropic",
    "decode_gemini",
    "OPENAI_FINISH_REASONS",
    "ANTHROPIC_STOP_REASONS",
    "GEMINI_FINISH_REASONS",
]
