"""Eviction policies for the context-window manager.

Victim selection is pure: each function inspects the stored sequence and
returns the indices to remove for one eviction step. The manager applies the
removal and re-estimates.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Protocol, Sequence

from ..models_parts.enums import Role
from ..models_parts.message import Message


class EvictionPolicy(str, Enum):
    SLIDING_WINDOW = "sliding_window"
    TRUNCATE_OLDEST = "truncate_oldest"
    SUMMARIZE = "summarize"


class Summarizer(Protocol):
    """Condense an old prefix of the history into one synopsis message.

    Returning ``None`` declines; the manager then truncates instead.
    """

    def __call__(self, messages: Sequence[Message]) -> Optional[Message]: ...


def sliding_window_victims(messages: Sequence[Message]) -> List[int]:
    """First ``user`` message plus an immediately following ``assistant``.

    Without any ``user`` message the literal oldest message is chosen,
    whatever its role.
    """
    if not messages:
        return []
    for index, msg in enumerate(messages):
        if msg.role is Role.USER:
            victims = [index]
            if index + 1 < len(messages) and messages[index + 1].role is Role.ASSISTANT:
                victims.append(index + 1)
            return victims
    return [0]


def truncate_oldest_victims(messages: Sequence[Message]) -> List[int]:
    """Oldest non-``system`` message, or the literal oldest if all are system."""
    if not messages:
        return []
    for index, msg in enumerate(messages):
        if msg.role is not Role.SYSTEM:
            return [index]
    return [0]


def summary_prefix_length(messages: Sequence[Message]) -> int:
    """Number of oldest messages handed to a summarizer (the older half)."""
    return (len(messages) + 1) // 2


def coerce_policy(value: "EvictionPolicy | str") -> EvictionPolicy:
    if isinstance(value, EvictionPolicy):
        return value
    try:
        return EvictionPolicy(str(value).strip().lower().replace("-", "_"))
    except ValueError as exc:
        raise ValueError(f"unknown eviction policy: {value!r}") from exc


__all__ = [
    "EvictionPolicy",
    "Summarizer",
    "sliding_window_victims",
    "truncate_oldest_victims",
    "summary_prefix_length",
    "coerce_policy",
]
