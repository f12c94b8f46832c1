"""Approximate token estimator.

The estimate is deliberately provider-neutral: it averages a character-based
count (non-whitespace characters / 4) with a word-based count (words * 1.3),
rounding each up. It is pure and linear in the text length, so the context
manager can call it on every mutation.

Message lists add a fixed structural overhead per message plus one
reply-priming overhead for the whole list. Media parts cost a fixed amount
that depends only on the detail hint.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Iterable, Tuple

from ..models_parts.content_part import (
    MEDIA_PART_TYPES,
    ImagePart,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)
from ..models_parts.message import Message

MESSAGE_OVERHEAD_TOKENS = 4
REPLY_PRIMING_TOKENS = 3
IMAGE_HIGH_DETAIL_TOKENS = 765
IMAGE_LOW_DETAIL_TOKENS = 85

_WORD = re.compile(r"\S+")


def estimate_tokens(text: str) -> int:
    """Return the approximate token count of ``text``.

    Empty text costs 0; any other text costs at least 1.
    """
    if not text:
        return 0
    non_ws = 0
    words = 0
    for match in _WORD.finditer(text):
        words += 1
        non_ws += match.end() - match.start()
    by_chars = math.ceil(non_ws / 4)
    by_words = math.ceil(words * 1.3)
    # whitespace-only text still costs a token
    return max(1, math.ceil((by_chars + by_words) / 2))


def _json_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, ensure_ascii=False, default=str, sort_keys=True)
    except (TypeError, ValueError):
        return str(value)


def _part_tokens(part: Any) -> int:
    if isinstance(part, TextPart):
        return estimate_tokens(part.text)
    if isinstance(part, ImagePart):
        return IMAGE_HIGH_DETAIL_TOKENS if part.is_high_detail else IMAGE_LOW_DETAIL_TOKENS
    if isinstance(part, MEDIA_PART_TYPES):
        return IMAGE_LOW_DETAIL_TOKENS
    if isinstance(part, ToolCallPart):
        return estimate_tokens(part.name) + estimate_tokens(_json_text(dict(part.arguments)))
    if isinstance(part, ToolResultPart):
        return estimate_tokens(part.name) + estimate_tokens(_json_text(part.result))
    return 0


def estimate_message_tokens(messages: Iterable[Message]) -> int:
    """Estimate the token cost of a message list as a provider would bill it."""
    total = 0
    count = 0
    for msg in messages:
        count += 1
        total += MESSAGE_OVERHEAD_TOKENS
        if msg.name:
            total += estimate_tokens(msg.name)
        for part in msg.content:
            total += _part_tokens(part)
        for call in msg.tool_calls or ():
            total += _part_tokens(call)
    if count == 0:
        return 0
    return total + REPLY_PRIMING_TOKENS


def exceeds_limit(text: str, max_tokens: int) -> bool:
    return estimate_tokens(text) > max_tokens


def truncate_to_fit(text: str, max_tokens: int) -> Tuple[str, int]:
    """Cut ``text`` at a word boundary so its estimate fits ``max_tokens``.

    Returns the (possibly shortened) text and its estimate. Original spacing
    inside the kept prefix is preserved.
    """
    current = estimate_tokens(text)
    if current <= max_tokens:
        return text, current
    if max_tokens <= 0:
        return "", 0
    ends = [m.end() for m in _WORD.finditer(text)]
    # estimate is monotonic in the number of kept words
    lo, hi = 0, len(ends)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if estimate_tokens(text[: ends[mid - 1]]) <= max_tokens:
            lo = mid
        else:
            hi = mid - 1
    if lo == 0:
        return "", 0
    kept = text[: ends[lo - 1]]
    return kept, estimate_tokens(kept)


__all__ = [
    "MESSAGE_OVERHEAD_TOKENS",
    "REPLY_PRIMING_TOKENS",
    "IMAGE_HIGH_DETAIL_TOKENS",
    "IMAGE_LOW_DETAIL_TOKENS",
    "estimate_tokens",
    "estimate_message_tokens",
    "exceeds_limit",
    "truncate_to_fit",
]
