"""Raw fragment stream → unified events.

``normalize_stream`` / ``anormalize_stream`` drive an :class:`SSELineBuffer`
over the fragment source and decode every actionable line with the dialect's
decoder. The output starts with one ``start`` event; decoded events follow in
arrival order, one chunk at a time, with no lookahead.

Failure handling (always data, never raised):

- malformed JSON (including nesting too deep to decode), a non-object
  payload, or a chunk the decoder cannot read yields one ``error`` event with
  code ``malformed_chunk`` and the stream ends;
- an in-band provider error ends the stream after its ``error`` event;
- an exception raised by the fragment source is classified with
  ``classify_exception`` and surfaced as a terminal ``error`` event.

Interim ``done`` events carrying usage or finish reasons may appear before
the end and are never terminal. The stream ends with one final ``done`` at
the OpenAI ``[DONE]`` sentinel, at Anthropic ``message_stop``, or when a
Gemini stream runs out of fragments. That final ``done`` carries the last
finish reason, the merged usage and the metadata reported so far.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, AsyncIterator, Dict, Iterable, Iterator, List, Optional, Tuple

from ..errors_parts.classification import classify_exception
from ..errors_parts.error_code import RETRYABLE_CODES, ErrorCode
from ..errors_parts.provider_error import ProviderError
from ..log_support import LogContext
from ..logging import get_logger, normalized_log_event
from ..models_parts.enums import FinishReason
from ..models_parts.usage import Usage
from .dialects import Dialect, coerce_dialect
from .events import StreamEvent, StreamEventType
from .framing import Fragment, SSELineBuffer

_logger = get_logger("streaming.normalizer")


@dataclass
class _LineDecoder:
    """Per-stream decoding state shared by the sync and async drivers."""

    dialect: Dialect
    provider: str
    model: Optional[str]
    logger: logging.Logger
    buffer: SSELineBuffer = field(default_factory=SSELineBuffer)
    emitted: int = 0
    usage: Optional[Usage] = None
    finish_reason: Optional[FinishReason] = None
    done_metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def ctx(self) -> LogContext:
        return LogContext(dialect=self.dialect.value, model=self.model)

    def start(self) -> StreamEvent:
        normalized_log_event(self.logger, "stream.start", self.ctx, phase="start", emitted=0)
        meta = {"dialect": self.dialect.value}
        if self.model:
            meta["model"] = self.model
        return StreamEvent.start(**meta)

    def _malformed(self, payload: str, reason: str) -> StreamEvent:
        normalized_log_event(
            self.logger,
            "stream.decode.error",
            self.ctx,
            phase="decode",
            error_code=ErrorCode.MALFORMED_CHUNK.value,
            emitted=self.emitted,
            level=logging.WARNING,
            reason=reason,
            payload_preview=payload[:200],
        )
        return StreamEvent.failure(
            ProviderError(
                code=ErrorCode.MALFORMED_CHUNK,
                message=f"malformed stream chunk: {reason}",
                provider=self.provider,
                model=self.model,
                retryable=True,
                raw=payload,
            )
        )

    def transport_failure(self, exc: Exception) -> StreamEvent:
        code = classify_exception(exc)
        normalized_log_event(
            self.logger,
            "stream.transport.error",
            self.ctx,
            phase="transport",
            error_code=code.value,
            emitted=self.emitted,
            level=logging.WARNING,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return StreamEvent.failure(
            ProviderError(
                code=code,
                message=str(exc) or type(exc).__name__,
                provider=self.provider,
                model=self.model,
                retryable=code in RETRYABLE_CODES,
                raw=exc,
            )
        )

    def _track(self, event: StreamEvent) -> None:
        if event.usage is not None:
            self.usage = event.usage if self.usage is None else self.usage.merge(event.usage)
        if event.type is StreamEventType.DONE:
            if event.finish_reason is not None:
                self.finish_reason = event.finish_reason
            self.done_metadata.update((k, v) for k, v in event.metadata.items() if k != "interim")

    def final_done(self) -> StreamEvent:
        """The single terminal ``done``, folding in everything reported so far."""
        return StreamEvent.done(self.finish_reason, self.usage, **self.done_metadata)

    def decode_line(self, line: str) -> Tuple[List[StreamEvent], bool]:
        """Decode one complete line; returns (events, stream_finished)."""
        payload = self.buffer.payload_of(line)
        if payload is None:
            return [], False
        sentinel = self.dialect.sentinel
        if sentinel is not None and payload.strip() == sentinel:
            return [self.final_done()], True
        try:
            chunk = json.loads(payload)
        except json.JSONDecodeError as exc:
            return [self._malformed(payload, f"invalid JSON ({exc.msg})")], True
        except RecursionError:
            return [self._malformed(payload, "payload nested too deeply")], True
        if not isinstance(chunk, dict):
            return [self._malformed(payload, f"expected object, got {type(chunk).__name__}")], True
        try:
            events = self.dialect.decode(chunk)
        except (TypeError, ValueError, KeyError, AttributeError, RecursionError) as exc:
            return [self._malformed(payload, f"unreadable chunk ({type(exc).__name__}: {exc})")], True
        out: List[StreamEvent] = []
        for event in events:
            self._track(event)
            if event.type is StreamEventType.ERROR:
                out.append(event)
                return out, True
            if event.type is StreamEventType.DONE and not event.is_interim:
                out.append(self.final_done())
                return out, True
            out.append(event)
        return out, False

    def process(self, lines: Iterable[str]) -> Tuple[List[StreamEvent], bool]:
        """Decode complete lines in order, stopping at the first terminal one."""
        out: List[StreamEvent] = []
        finished = False
        for line in lines:
            events, finished = self.decode_line(line)
            out.extend(events)
            if finished:
                break
        self.emitted += len(out)
        return out, finished

    def at_eof(self) -> List[StreamEvent]:
        """Events owed once the source is exhausted without a terminal line."""
        if not self.dialect.ends_at_eof:
            return []
        self.emitted += 1
        return [self.final_done()]

    def end(self, reason: str) -> None:
        normalized_log_event(
            self.logger,
            "stream.end",
            self.ctx,
            phase="finalize",
            emitted=self.emitted,
            tokens=self.usage,
            reason=reason,
        )


def _make_decoder(
    dialect: "Dialect | str",
    provider: Optional[str],
    model: Optional[str],
    logger: Optional[logging.Logger],
) -> _LineDecoder:
    resolved = coerce_dialect(dialect)
    return _LineDecoder(
        dialect=resolved,
        provider=provider or resolved.value,
        model=model,
        logger=logger or _logger,
    )


def normalize_stream(
    fragments: Iterable[Fragment],
    dialect: "Dialect | str",
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> Iterator[StreamEvent]:
    """Yield unified events decoded from a synchronous fragment source."""
    decoder = _make_decoder(dialect, provider, model, logger)
    yield decoder.start()
    source = iter(fragments)
    while True:
        try:
            fragment = next(source)
        except StopIteration:
            break
        except Exception as exc:  # noqa: BLE001 - transport failures become data
            yield decoder.transport_failure(exc)
            decoder.end("transport_error")
            return
        events, finished = decoder.process(decoder.buffer.feed(fragment))
        for event in events:
            yield event
        if finished:
            decoder.end("terminal")
            return
    events, finished = decoder.process(decoder.buffer.flush())
    if not finished:
        events.extend(decoder.at_eof())
    for event in events:
        yield event
    decoder.end("terminal" if finished else "exhausted")


async def anormalize_stream(
    fragments: AsyncIterable[Fragment],
    dialect: "Dialect | str",
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> AsyncIterator[StreamEvent]:
    """Async variant of :func:`normalize_stream`.

    Suspends only while awaiting the next fragment. Cancellation propagates.
    """
    decoder = _make_decoder(dialect, provider, model, logger)
    yield decoder.start()
    source = fragments.__aiter__()
    while True:
        try:
            fragment = await source.__anext__()
        except StopAsyncIteration:
            break
        except Exception as exc:  # noqa: BLE001 - transport failures become data
            yield decoder.transport_failure(exc)
            decoder.end("transport_error")
            return
        events, finished = decoder.process(decoder.buffer.feed(fragment))
        for event in events:
            yield event
        if finished:
            decoder.end("terminal")
            return
    events, finished = decoder.process(decoder.buffer.flush())
    if not finished:
        events.extend(decoder.at_eof())
    for event in events:
        yield event
    decoder.end("terminal" if finished else "exhausted")


__all__ = ["normalize_stream", "anormalize_stream"]
