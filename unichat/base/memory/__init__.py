"""Conversation memory stores."""

from .in_memory_store import ConversationMemory, InMemoryConversationStore, LimitedConversationStore
from .indexed import IndexedConversation

__all__ = ["ConversationMemory", "InMemoryConversationStore", "LimitedConversationStore", "IndexedConversation"]
