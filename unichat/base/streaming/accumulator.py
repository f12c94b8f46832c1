"""Consumer-side accumulation of unified stream events.

Dialects attach finish reasons and usage at different points (OpenAI on the
last choice chunk or a trailing usage chunk, Anthropic on ``message_start`` /
``message_delta``, Gemini on every chunk). :class:`StreamAccumulator` folds a
sequence into one :class:`StreamResult`:

- text deltas are concatenated in arrival order;
- the last non-null finish reason wins; usage reports are merged field-wise;
- tool-call fragments are assembled by index and their argument text is
  JSON-parsed once the stream is complete;
- the first error, or the first ``done`` not marked ``interim``, ends
  accumulation; anything after it is ignored.

:func:`unify_stream` applies the same rules on the fly and yields the
caller-facing sequence: one ``start``, the deltas, and exactly one terminal
event (the first ``error``, or a synthesized ``done`` whose finish reason
defaults to ``stop``).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, AsyncIterator, Dict, Iterable, Iterator, List, Optional, Tuple

from ..errors_parts.provider_error import ProviderError
from ..models_parts.content_part import ToolCallPart
from ..models_parts.enums import FinishReason
from ..models_parts.message import Message
from ..models_parts.usage import Usage
from .dialects import Dialect
from .events import StreamEvent, StreamEventType, ToolCallDelta
from .framing import Fragment
from .normalizer import anormalize_stream, normalize_stream

RAW_ARGUMENTS_KEY = "_raw"


@dataclass
class _ToolCallBuilder:
    index: int
    id: Optional[str] = None
    name: Optional[str] = None
    fragments: List[str] = field(default_factory=list)
    arguments: Optional[Dict[str, Any]] = None

    def add(self, delta: ToolCallDelta) -> None:
        if delta.id:
            self.id = delta.id
        if delta.name:
            self.name = delta.name
        if delta.arguments_fragment:
            self.fragments.append(delta.arguments_fragment)
        if delta.arguments is not None:
            self.arguments = dict(delta.arguments)

    def build(self) -> ToolCallPart:
        arguments: Dict[str, Any]
        if self.fragments:
            text = "".join(self.fragments)
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                parsed = None
            arguments = parsed if isinstance(parsed, dict) else {RAW_ARGUMENTS_KEY: text}
        else:
            arguments = self.arguments or {}
        return ToolCallPart(
            id=self.id or f"call_{self.index}",
            name=self.name or "unknown",
            arguments=arguments,
        )


@dataclass(frozen=True)
class StreamResult:
    """Folded outcome of a stream."""

    text: str
    finish_reason: Optional[FinishReason]
    usage: Optional[Usage]
    tool_calls: Tuple[ToolCallPart, ...] = ()
    error: Optional[ProviderError] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_message(self) -> Message:
        """The assistant message this response represents."""
        return Message.assistant(self.text, tool_calls=self.tool_calls or None)


class StreamAccumulator:
    def __init__(self) -> None:
        self._text: List[str] = []
        self._tools: Dict[int, _ToolCallBuilder] = {}
        self._metadata: Dict[str, Any] = {}
        self.finish_reason: Optional[FinishReason] = None
        self.usage: Optional[Usage] = None
        self.error: Optional[ProviderError] = None
        self.event_count = 0
        self._done = False

    @property
    def text(self) -> str:
        return "".join(self._text)

    @property
    def finished(self) -> bool:
        return self.error is not None or self._done

    @property
    def metadata(self) -> Dict[str, Any]:
        return dict(self._metadata)

    def _tool_delta(self, delta: ToolCallDelta) -> None:
        builder = self._tools.get(delta.index)
        # whole-call dialects reuse per-chunk indexes; keep distinct calls apart
        if builder is not None and delta.arguments is not None and builder.arguments is not None:
            builder = None
            index = max(self._tools) + 1
        else:
            index = delta.index
        if builder is None:
            builder = self._tools.setdefault(index, _ToolCallBuilder(index=index))
        builder.add(delta)

    def add(self, event: StreamEvent) -> None:
        if self.finished:
            return
        self.event_count += 1
        if event.type is StreamEventType.TEXT_DELTA and event.text:
            self._text.append(event.text)
        elif event.type is StreamEventType.TOOL_CALL_DELTA and event.tool_call is not None:
            self._tool_delta(event.tool_call)
        elif event.type is StreamEventType.ERROR:
            self.error = event.error
        if event.finish_reason is not None:
            self.finish_reason = event.finish_reason
        if event.usage is not None:
            self.usage = event.usage if self.usage is None else self.usage.merge(event.usage)
        if event.type is StreamEventType.DONE:
            self._metadata.update({k: v for k, v in event.metadata.items() if k != "interim"})
            self._done = not event.is_interim

    def tool_calls(self) -> Tuple[ToolCallPart, ...]:
        return tuple(self._tools[i].build() for i in sorted(self._tools))

    def final_event(self) -> StreamEvent:
        """Terminal event for the accumulated state."""
        if self.error is not None:
            return StreamEvent.failure(self.error)
        return StreamEvent.done(self.finish_reason or FinishReason.STOP, self.usage, **self._metadata)

    def result(self) -> StreamResult:
        finish = self.finish_reason
        if finish is None and self.error is None:
            finish = FinishReason.STOP
        return StreamResult(
            text=self.text,
            finish_reason=finish,
            usage=self.usage,
            tool_calls=self.tool_calls(),
            error=self.error,
            metadata=self.metadata,
        )


def accumulate_stream(events: Iterable[StreamEvent]) -> StreamResult:
    """Fold a complete event sequence into a :class:`StreamResult`."""
    acc = StreamAccumulator()
    for event in events:
        acc.add(event)
        if acc.finished:
            break
    return acc.result()


def _unify_step(acc: StreamAccumulator, event: StreamEvent, started: bool) -> List[StreamEvent]:
    """Events to pass through for one raw event (before the terminal one)."""
    out: List[StreamEvent] = []
    if event.type is StreamEventType.START:
        return [] if started else [event]
    if not started:
        out.append(StreamEvent.start())
    acc.add(event)
    if event.type in (StreamEventType.TEXT_DELTA, StreamEventType.TOOL_CALL_DELTA, StreamEventType.ERROR):
        out.append(event)
    return out


def unify_stream(events: Iterable[StreamEvent]) -> Iterator[StreamEvent]:
    """Caller-facing sequence: one start, deltas, exactly one terminal event."""
    acc = StreamAccumulator()
    started = False
    for event in events:
        out = _unify_step(acc, event, started)
        started = True
        yield from out
        if acc.error is not None:
            return
        if acc.finished:
            break
    if not started:
        yield StreamEvent.start()
    yield acc.final_event()


async def aunify_stream(events: AsyncIterable[StreamEvent]) -> AsyncIterator[StreamEvent]:
    """Async variant of :func:`unify_stream`."""
    acc = StreamAccumulator()
    started = False
    async for event in events:
        out = _unify_step(acc, event, started)
        started = True
        for item in out:
            yield item
        if acc.error is not None:
            return
        if acc.finished:
            break
    if not started:
        yield StreamEvent.start()
    yield acc.final_event()


def iter_unified_events(
    fragments: Iterable[Fragment],
    dialect: "Dialect | str",
    **kwargs: Any,
) -> Iterator[StreamEvent]:
    """Normalize raw fragments and unify the result in one pass."""
    return unify_stream(normalize_stream(fragments, dialect, **kwargs))


def aiter_unified_events(
    fragments: AsyncIterable[Fragment],
    dialect: "Dialect | str",
    **kwargs: Any,
) -> AsyncIterator[StreamEvent]:
    return aunify_stream(anormalize_stream(fragments, dialect, **kwargs))


__all__ = [
    "RAW_ARGUMENTS_KEY",
    "StreamResult",
    "StreamAccumulator",
    "accumulate_stream",
    "unify_stream",
    "aunify_stream",
    "iter_unified_events",
    "aiter_unified_events",
]
