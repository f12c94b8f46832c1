"""
Normalized error codes (taxonomy).

Defines the `ErrorCode` enumeration shared by the stream normalizer, the
transport boundary and structured logging. Values are lowercase snake_case
and form a stable public contract for logging and analytics.
"""
from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Enumerated normalized error codes representing failure categories."""

    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    TRANSIENT = "transient"
    UNSUPPORTED = "unsupported"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER_ERROR = "server_error"
    INTERNAL = "internal"
    UNAVAILABLE = "unavailable"
    MALFORMED_CHUNK = "malformed_chunk"
    CONTENT_FILTER = "content_filter"
    INVALID_CONTENT = "invalid_content"
    UNKNOWN = "unknown"


RETRYABLE_CODES = frozenset(
    {
        ErrorCode.RATE_LIMIT,
        ErrorCode.TIMEOUT,
        ErrorCode.TRANSIENT,
        ErrorCode.UNAVAILABLE,
        ErrorCode.MALFORMED_CHUNK,
    }
)


__all__ = ["ErrorCode", "RETRYABLE_CODES"]
