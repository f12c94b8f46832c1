"""Token usage extraction from streamed provider payloads.

Converts the provider-specific usage field names found in decoded stream
chunks into :class:`~unichat.base.models.Usage`:

OpenAI-style:
    ``usage.prompt_tokens`` / ``usage.completion_tokens`` and
    ``usage.prompt_tokens_details.cached_tokens``.
Anthropic:
    ``usage.input_tokens`` / ``usage.output_tokens`` and
    ``usage.cache_read_input_tokens``; ``message_start`` nests the usage
    object under ``message``.
Gemini:
    ``usageMetadata.promptTokenCount`` / ``candidatesTokenCount`` and
    ``cachedContentTokenCount``.

All helpers return ``None`` when the payload carries no usage at all, and
never raise: invalid or negative values downgrade to ``None``.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..models_parts.usage import Usage, _coerce_int


def _finalize(prompt: Optional[int], completion: Optional[int], cached: Optional[int]) -> Optional[Usage]:
    usage = Usage(prompt_tokens=prompt, completion_tokens=completion, cached_tokens=cached)
    return None if usage.is_empty else usage


def extract_openai_usage(payload: Mapping[str, Any]) -> Optional[Usage]:
    usage = payload.get("usage") if isinstance(payload, Mapping) else None
    if not isinstance(usage, Mapping):
        return None
    details = usage.get("prompt_tokens_details")
    cached = _coerce_int(details.get("cached_tokens")) if isinstance(details, Mapping) else None
    return _finalize(
        _coerce_int(usage.get("prompt_tokens")),
        _coerce_int(usage.get("completion_tokens")),
        cached,
    )


def extract_anthropic_usage(payload: Mapping[str, Any]) -> Optional[Usage]:
    if not isinstance(payload, Mapping):
        return None
    usage = payload.get("usage")
    if not isinstance(usage, Mapping):
        message = payload.get("message")
        usage = message.get("usage") if isinstance(message, Mapping) else None
    if not isinstance(usage, Mapping):
        return None
    return _finalize(
        _coerce_int(usage.get("input_tokens")),
        _coerce_int(usage.get("output_tokens")),
        _coerce_int(usage.get("cache_read_input_tokens")),
    )


def extract_gemini_usage(payload: Mapping[str, Any]) -> Optional[Usage]:
    meta = payload.get("usageMetadata") if isinstance(payload, Mapping) else None
    if not isinstance(meta, Mapping):
        return None
    return _finalize(
        _coerce_int(meta.get("promptTokenCount")),
        _coerce_int(meta.get("candidatesTokenCount")),
        _coerce_int(meta.get("cachedContentTokenCount")),
    )


__all__ = ["extract_openai_usage", "extract_anthropic_usage", "extract_gemini_usage"]
