"""Token usage reported by a provider for one request."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


def _coerce_int(value: Any) -> Optional[int]:
    """Coerce to a non-negative ``int`` or ``None``."""
    if value is None or isinstance(value, bool):
        return None
    try:
        iv = int(value)
    except (TypeError, ValueError):
        return None
    return iv if iv >= 0 else None


@dataclass(frozen=True)
class Usage:
    """Prompt / completion / cached token counts.

    Any count may be ``None`` when the provider did not report it. Dialects
    report usage in pieces (Anthropic sends prompt tokens at message start and
    output tokens at message end), so :meth:`merge` combines partial reports
    field by field.
    """

    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    cached_tokens: Optional[int] = None

    @property
    def total_tokens(self) -> int:
        return (self.prompt_tokens or 0) + (self.completion_tokens or 0)

    @property
    def is_empty(self) -> bool:
        return self.prompt_tokens is None and self.completion_tokens is None and self.cached_tokens is None

    def __add__(self, other: "Usage") -> "Usage":
        if not isinstance(other, Usage):
            return NotImplemented

        def _sum(a: Optional[int], b: Optional[int]) -> Optional[int]:
            if a is None and b is None:
                return None
            return (a or 0) + (b or 0)

        return Usage(
            prompt_tokens=_sum(self.prompt_tokens, other.prompt_tokens),
            completion_tokens=_sum(self.completion_tokens, other.completion_tokens),
            cached_tokens=_sum(self.cached_tokens, other.cached_tokens),
        )

    def merge(self, other: Optional["Usage"]) -> "Usage":
        """Overlay the non-null counts of ``other`` onto this usage."""
        if other is None:
            return self
        return Usage(
            prompt_tokens=other.prompt_tokens if other.prompt_tokens is not None else self.prompt_tokens,
            completion_tokens=(
                other.completion_tokens if other.completion_tokens is not None else self.completion_tokens
            ),
            cached_tokens=other.cached_tokens if other.cached_tokens is not None else self.cached_tokens,
        )

    def to_dict(self) -> Dict[str, Optional[int]]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "cached_tokens": self.cached_tokens,
            "total_tokens": self.total_tokens,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Usage":
        return cls(
            prompt_tokens=_coerce_int(data.get("prompt_tokens")),
            completion_tokens=_coerce_int(data.get("completion_tokens")),
            cached_tokens=_coerce_int(data.get("cached_tokens")),
        )


__all__ = ["Usage"]
