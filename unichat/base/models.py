"""
Provider-agnostic conversation models public surface.

This module re-exports the one-class-per-file implementations under
``unichat.base.models_parts`` so callers have one stable import path.
"""

from .models_parts.enums import ContentType, FinishReason, ImageDetail, Role
from .models_parts.content_part import (
    AudioPart,
    ContentPart,
    DocumentPart,
    ImagePart,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    content_part_from_dict,
)
from .models_parts.message import Message, coerce_content
from .models_parts.usage import Usage

__all__ = [
    "ContentType",
    "FinishReason",
    "ImageDetail",
    "Role",
    "AudioPart",
    "ContentPart",
    "DocumentPart",
    "ImagePart",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
    "content_part_from_dict",
    "Message",
    "coerce_content",
    "Usage",
]
