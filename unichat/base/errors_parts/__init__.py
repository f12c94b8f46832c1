"""Errors parts package public surface.

Re-exports individual error taxonomy components for optional direct imports.
Prefer importing from `unichat.base.errors` for the stable surface.
"""

from .error_code import ErrorCode, RETRYABLE_CODES
from .provider_error import ProviderError
from .invalid_content_error import InvalidContentError
from .classification import classify_exception, classify_provider_error_type, status_to_code

__all__ = [
    "ErrorCode",
    "RETRYABLE_CODES",
    "ProviderError",
    "InvalidContentError",
    "classify_exception",
    "classify_provider_error_type",
    "status_to_code",
]
