"""DTO validation package for conversation documents."""

from .conversation import (
    Role,
    ContentPartDTO,
    ToolCallDTO,
    MessageDTO,
    ConversationDocumentDTO,
    IndexedConversationDTO,
)

__all__ = [
    "Role",
    "ContentPartDTO",
    "ToolCallDTO",
    "MessageDTO",
    "ConversationDocumentDTO",
    "IndexedConversationDTO",
]
