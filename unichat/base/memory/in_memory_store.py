"""Conversation storage interface and in-memory reference stores.

Persistence itself is an external collaborator; this module only defines the
:class:`ConversationMemory` protocol plus two implementations suitable for
development, tests and single-process applications.

Thread safety: not thread-safe. Use locks if accessing from multiple threads.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, List, Optional, Protocol, runtime_checkable

from ..context.conversation import Conversation


@runtime_checkable
class ConversationMemory(Protocol):
    """Storage backend for whole conversations."""

    def save(self, conversation: Conversation) -> None: ...

    def load(self, conversation_id: str) -> Optional[Conversation]: ...

    def delete(self, conversation_id: str) -> bool: ...

    def list_ids(self) -> List[str]: ...

    def clear_all(self) -> None: ...


class InMemoryConversationStore:
    """Dictionary-backed store. Data is lost when the process exits.

    Conversations are stored as independent copies so later mutations of
    the caller's object do not leak into the store.
    """

    def __init__(self) -> None:
        self._conversations: Dict[str, Conversation] = {}

    def save(self, conversation: Conversation) -> None:
        self._conversations[conversation.id] = conversation.copy()

    def load(self, conversation_id: str) -> Optional[Conversation]:
        stored = self._conversations.get(conversation_id)
        return stored.copy() if stored is not None else None

    def delete(self, conversation_id: str) -> bool:
        return self._conversations.pop(conversation_id, None) is not None

    def list_ids(self) -> List[str]:
        return list(self._conversations.keys())

    def clear_all(self) -> None:
        self._conversations.clear()

    def __len__(self) -> int:
        return len(self._conversations)


class LimitedConversationStore:
    """Decorator that caps a store at ``max_conversations``.

    Saving beyond the cap deletes the least recently used conversation (a
    load or save counts as a use).
    """

    def __init__(self, delegate: ConversationMemory, max_conversations: int = 100) -> None:
        if max_conversations <= 0:
            raise ValueError("max_conversations must be positive")
        self.delegate = delegate
        self.max_conversations = max_conversations
        self._order: "OrderedDict[str, None]" = OrderedDict()

    def _touch(self, conversation_id: str) -> None:
        self._order[conversation_id] = None
        self._order.move_to_end(conversation_id)

    def save(self, conversation: Conversation) -> None:
        if conversation.id not in self._order:
            while len(self._order) >= self.max_conversations:
                oldest, _ = self._order.popitem(last=False)
                self.delegate.delete(oldest)
        self._touch(conversation.id)
        self.delegate.save(conversation)

    def load(self, conversation_id: str) -> Optional[Conversation]:
        conversation = self.delegate.load(conversation_id)
        if conversation is not None:
            self._touch(conversation_id)
        return conversation

    def delete(self, conversation_id: str) -> bool:
        self._order.pop(conversation_id, None)
        return self.delegate.delete(conversation_id)

    def list_ids(self) -> List[str]:
        return self.delegate.list_ids()

    def clear_all(self) -> None:
        self._order.clear()
        self.delegate.clear_all()


__all__ = ["ConversationMemory", "InMemoryConversationStore", "LimitedConversationStore"]
