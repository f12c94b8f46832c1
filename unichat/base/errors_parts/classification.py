"""
Error classification helpers mapping failures to normalized ErrorCode values.

Covers three sources: raised exceptions (transport failures surfacing in the
fragment source), HTTP status codes, and the error-type strings providers put
inside streamed error payloads (``overloaded_error``, ``rate_limit_exceeded``,
``RESOURCE_EXHAUSTED``...).
"""
from __future__ import annotations

import asyncio
from typing import Dict, Optional

from .error_code import ErrorCode
from .provider_error import ProviderError


def _extract_status(exc: Exception) -> Optional[int]:
    """Attempt to extract an HTTP status code from an exception.

    Checked in order: ``exc.status_code``, ``exc.status``,
    ``exc.response.status_code``. Returns ``None`` when none is valid.
    """
    for attr in ("status_code", "status"):
        val = getattr(exc, attr, None)
        if isinstance(val, int) and 100 <= val < 600:
            return val
    resp = getattr(exc, "response", None)
    if resp is not None:
        sc = getattr(resp, "status_code", None)
        if isinstance(sc, int) and 100 <= sc < 600:
            return sc
    return None


_HTTP_STATUS_MAP: Dict[int, ErrorCode] = {
    400: ErrorCode.VALIDATION,
    401: ErrorCode.AUTH,
    403: ErrorCode.AUTH,
    404: ErrorCode.NOT_FOUND,
    408: ErrorCode.TIMEOUT,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION,
    429: ErrorCode.RATE_LIMIT,
    500: ErrorCode.SERVER_ERROR,
    502: ErrorCode.TRANSIENT,
    503: ErrorCode.UNAVAILABLE,
    504: ErrorCode.TIMEOUT,
    529: ErrorCode.UNAVAILABLE,
}

_PATTERN_GROUPS = (
    (ErrorCode.RATE_LIMIT, ("rate_limit", "rate limit", "resource_exhausted", "quota")),
    (ErrorCode.TIMEOUT, ("timeout", "timed out", "deadline_exceeded")),
    (ErrorCode.AUTH, ("auth", "api key", "unauthorized", "forbidden", "permission")),
    (ErrorCode.UNAVAILABLE, ("overloaded", "unavailable", "temporarily down")),
    (ErrorCode.UNSUPPORTED, ("unsupported", "not supported")),
    (ErrorCode.NOT_FOUND, ("not found", "not_found", "does not exist")),
    (ErrorCode.CONFLICT, ("conflict", "already exists")),
    (ErrorCode.CONTENT_FILTER, ("safety", "content_filter", "blocked")),
    (ErrorCode.VALIDATION, ("validation", "invalid", "malformed")),
    (ErrorCode.SERVER_ERROR, ("server error", "server_error", "internal error", "api_error")),
    (ErrorCode.TRANSIENT, ("connect", "reset by peer", "protocolerror", "incomplete")),
)


def _heuristic_from_message(msg: str) -> Optional[ErrorCode]:
    """Substring heuristic mapping for messages and error-type strings."""
    for code, patterns in _PATTERN_GROUPS:
        if any(p in msg for p in patterns):
            return code
    return None


def status_to_code(status: int) -> ErrorCode:
    """Map an HTTP status to an ``ErrorCode`` (5xx default to server error)."""
    if status in _HTTP_STATUS_MAP:
        return _HTTP_STATUS_MAP[status]
    if 500 <= status < 600:
        return ErrorCode.SERVER_ERROR
    if 400 <= status < 500:
        return ErrorCode.VALIDATION
    return ErrorCode.UNKNOWN


def classify_exception(exc: BaseException) -> ErrorCode:
    """Classify an exception into a normalized :class:`ErrorCode`.

    Precedence:
        1. ProviderError passthrough.
        2. Cancellation and timeout exceptions.
        3. HTTP status mapping.
        4. Message substring heuristics.
        5. ``UNKNOWN`` fallback.
    """
    if isinstance(exc, ProviderError):
        return exc.code
    if isinstance(exc, asyncio.CancelledError):
        return ErrorCode.CANCELLED
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return ErrorCode.TIMEOUT
    if isinstance(exc, Exception):
        status = _extract_status(exc)
        if status is not None:
            return status_to_code(status)
    code = _heuristic_from_message(f"{type(exc).__name__} {exc}".lower())
    return code if code is not None else ErrorCode.UNKNOWN


def classify_provider_error_type(error_type: Optional[str], message: str = "") -> ErrorCode:
    """Classify a provider error-type string found inside a streamed payload.

    Examples: ``overloaded_error`` → ``UNAVAILABLE``; ``rate_limit_error`` →
    ``RATE_LIMIT``; ``RESOURCE_EXHAUSTED`` → ``RATE_LIMIT``. Falls back to the
    message text, then ``UNKNOWN``.
    """
    for candidate in (error_type, message):
        if candidate:
            code = _heuristic_from_message(str(candidate).lower())
            if code is not None:
                return code
    return ErrorCode.UNKNOWN


__all__ = [
    "classify_exception",
    "classify_provider_error_type",
    "status_to_code",
    "_extract_status",
    "_HTTP_STATUS_MAP",
]
