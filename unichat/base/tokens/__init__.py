"""Token estimation and usage extraction helpers."""

from .estimator import (
    IMAGE_HIGH_DETAIL_TOKENS,
    IMAGE_LOW_DETAIL_TOKENS,
    MESSAGE_OVERHEAD_TOKENS,
    REPLY_PRIMING_TOKENS,
    estimate_message_tokens,
    estimate_tokens,
    exceeds_limit,
    truncate_to_fit,
)
from .extraction import extract_anthropic_usage, extract_gemini_usage, extract_openai_usage

__all__ = [
    "IMAGE_HIGH_DETAIL_TOKENS",
    "IMAGE_LOW_DETAIL_TOKENS",
    "MESSAGE_OVERHEAD_TOKENS",
    "REPLY_PRIMING_TOKENS",
    "estimate_message_tokens",
    "estimate_tokens",
    "exceeds_limit",
    "truncate_to_fit",
    "extract_anthropic_usage",
    "extract_gemini_usage",
    "extract_openai_usage",
]
