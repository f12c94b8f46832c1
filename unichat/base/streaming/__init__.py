"""Streaming normalization layer.

Framing (:class:`SSELineBuffer`), per-dialect decoding (:class:`Dialect`),
the fragment-to-event normalizer and the consumer-side accumulator.
"""

from .events import StreamEvent, StreamEventType, ToolCallDelta
from .framing import DATA_PREFIX, SSELineBuffer
from .dialects import (
    DECODERS,
    DONE_SENTINEL,
    Dialect,
    coerce_dialect,
    decode_anthropic,
    decode_gemini,
    decode_openai,
)
from .normalizer import anormalize_stream, normalize_stream
from .accumulator import (
    StreamAccumulator,
    StreamResult,
    accumulate_stream,
    aiter_unified_events,
    aunify_stream,
    iter_unified_events,
    unify_stream,
)

__all__ = [
    "StreamEvent",
    "StreamEventType",
    "ToolCallDelta",
    "DATA_PREFIX",
    "SSELineBuffer",
    "DECODERS",
    "DONE_SENTINEL",
    "Dialect",
    "coerce_dialect",
    "decode_anthropic",
    "decode_gemini",
    "decode_openai",
    "normalize_stream",
    "anormalize_stream",
    "StreamAccumulator",
    "StreamResult",
    "accumulate_stream",
    "unify_stream",
    "aunify_stream",
    "iter_unified_events",
    "aiter_unified_events",
]
