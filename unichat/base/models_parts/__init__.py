"""Models parts package public surface.

Re-exports individual models so callers can import from
`unichat.base.models_parts` if needed, while `unichat.base.models` remains
the primary stable import path.
"""

from .enums import ContentType, FinishReason, ImageDetail, Role
from .content_part import (
    AudioPart,
    ContentPart,
    DocumentPart,
    ImagePart,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    content_part_from_dict,
)
from .message import Message
from .usage import Usage

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
    "Usage",
]
