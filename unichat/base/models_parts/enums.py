"""
Enumerations shared by the conversation and streaming models.

All enums subclass ``str`` so their values serialize directly into JSON
documents and structured log payloads.
"""
from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Author of a message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ContentType(str, Enum):
    """Discriminator of a content part."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    DOCUMENT = "document"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"


class ImageDetail(str, Enum):
    """Detail hint for vision models; ``high`` costs more tokens."""

    LOW = "low"
    HIGH = "high"
    AUTO = "auto"


class FinishReason(str, Enum):
    """Why the model stopped generating."""

    STOP = "stop"
    MAX_TOKENS = "max_tokens"
    CONTENT_FILTER = "content_filter"
    TOOL_CALLS = "tool_calls"
    UNKNOWN = "unknown"


__all__ = ["Role", "ContentType", "ImageDetail", "FinishReason"]
