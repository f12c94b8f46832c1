"""Unified error taxonomy public surface.

Re-exports the one-class-per-file implementations under
``unichat.base.errors_parts`` to keep a stable import path.
"""

from .errors_parts.error_code import ErrorCode, RETRYABLE_CODES
from .errors_parts.provider_error import ProviderError
from .errors_parts.invalid_content_error import InvalidContentError
from .errors_parts.classification import (
    classify_exception,
    classify_provider_error_type,
    status_to_code,
)

__all__ = [
    "ErrorCode",
    "RETRYABLE_CODES",
    "ProviderError",
    "InvalidContentError",
    "classify_exception",
    "classify_provider_error_type",
    "status_to_code",
]
