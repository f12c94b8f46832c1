"""Context window sizes for known model families."""

from __future__ import annotations

import logging

from ..logging import get_logger, log_event

# Model context limits (in tokens)
MODEL_CONTEXT_LIMITS = {
    # OpenAI models
    "gpt-4": 8192,
    "gpt-4-32k": 32768,
    "gpt-4-turbo": 128000,
    "gpt-4o": 128000,
    "gpt-4o-mini": 128000,
    "gpt-4.1": 1047576,
    "o1": 200000,
    "o1-mini": 128000,
    "o3": 200000,
    "o3-mini": 200000,
    "gpt-3.5-turbo": 16385,
    # Anthropic models
    "claude-3-opus": 200000,
    "claude-3-sonnet": 200000,
    "claude-3-haiku": 200000,
    "claude-3-5-sonnet": 200000,
    "claude-3-5-haiku": 200000,
    "claude-sonnet-4": 200000,
    "claude-opus-4": 200000,
    # Gemini models
    "gemini-1.5-pro": 2000000,
    "gemini-1.5-flash": 1000000,
    "gemini-1.0-pro": 32760,
    "gemini-2.0-flash": 1048576,
    "gemini-2.5-pro": 1048576,
    # DeepSeek / xAI
    "deepseek-chat": 65536,
    "deepseek-reasoner": 65536,
    "grok-2": 131072,
    "grok-3": 131072,
}

DEFAULT_CONTEXT_LIMIT = 4096

_logger = get_logger("context.limits")


def get_context_limit(model: str) -> int:
    """Return the context window for ``model``.

    Exact match first, then the longest known family key contained in the
    model name; unknown models get :data:`DEFAULT_CONTEXT_LIMIT`.
    """
    if model in MODEL_CONTEXT_LIMITS:
        return MODEL_CONTEXT_LIMITS[model]
    model_lower = model.lower()
    for key in sorted(MODEL_CONTEXT_LIMITS, key=len, reverse=True):
        if key in model_lower:
            return MODEL_CONTEXT_LIMITS[key]
    log_event(
        _logger,
        "context.limit.unknown_model",
        level=logging.WARNING,
        model=model,
        default_limit=DEFAULT_CONTEXT_LIMIT,
    )
    return DEFAULT_CONTEXT_LIMIT


__all__ = ["MODEL_CONTEXT_LIMITS", "DEFAULT_CONTEXT_LIMIT", "get_context_limit"]
