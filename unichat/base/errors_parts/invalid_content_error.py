"""
Construction-time content validation error.

Raised eagerly by content-part and message constructors when a caller builds
an unrecognized or self-contradictory value (for example a media part with
neither a URL nor inline data). It subclasses ``ValueError`` so generic
validation handlers keep working.
"""
from __future__ import annotations

from .error_code import ErrorCode


class InvalidContentError(ValueError):
    """A content part or message violates its construction invariants."""

    code = ErrorCode.INVALID_CONTENT

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


__all__ = ["InvalidContentError"]
