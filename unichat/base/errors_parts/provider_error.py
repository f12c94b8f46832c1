"""
Structured provider error type.

`ProviderError` wraps a failure with a normalized `ErrorCode`. The stream
normalizer carries instances as data on error events instead of raising them,
so callers can render partial output up to the failure point.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .error_code import ErrorCode


@dataclass
class ProviderError(Exception):
    """Represents a structured provider error with a normalized error code.

    Attributes:
        code: Normalized :class:`ErrorCode` classification for the failure.
        message: Human-readable error message suitable for logging.
        provider: Dialect or provider key where the error originated
            (e.g., ``"openai"``).
        model: Optional model name associated with the failure.
        retryable: Hint for the caller's restart logic (not authoritative).
        raw: Optional original exception or offending payload text.
    """

    code: ErrorCode
    message: str
    provider: str
    model: Optional[str] = None
    retryable: bool = False
    raw: Optional[object] = None

    def __str__(self) -> str:
        return f"{self.provider}:{self.model or '-'} {self.code.value}: {self.message}"

    def to_dict(self) -> dict:
        """Return a JSON-friendly view (``raw`` is rendered with ``repr``)."""
        return {
            "code": self.code.value,
            "message": self.message,
            "provider": self.provider,
            "model": self.model,
            "retryable": self.retryable,
        }


__all__ = ["ProviderError"]
