"""Conversation store.

A :class:`Conversation` owns an ordered message sequence (insertion order is
temporal order, never reordered), an optional constant system prompt that is
prepended on read but never stored in the sequence, and two timestamps.
``updated_at`` advances on every mutation and is assigned in the same
statement as the new sequence, so readers never observe one without the
other.

Identity is the opaque ``id``; equality and hashing ignore content.

Thread safety: not thread-safe. One logical owner per conversation.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from ..dto.conversation import ConversationDocumentDTO
from ..models_parts.message import Message, parse_timestamp

_UNSET: Any = object()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Conversation:
    """Ordered message history plus a constant system prompt."""

    def __init__(
        self,
        *,
        id: Optional[str] = None,  # noqa: A002 - mirrors the document key
        system_prompt: Optional[str] = None,
        title: Optional[str] = None,
        messages: Optional[Iterable[Message]] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> None:
        self._id = id or uuid.uuid4().hex
        self._system_prompt = system_prompt
        self.title = title
        self.metadata: Dict[str, Any] = dict(metadata or {})
        self._created_at = parse_timestamp(created_at) if created_at else _utcnow()
        initial = tuple(messages or ())
        for msg in initial:
            if not isinstance(msg, Message):
                raise TypeError(f"expected Message, got {type(msg).__name__}")
        stamp = parse_timestamp(updated_at) if updated_at else self._created_at
        self._messages, self._updated_at = initial, max(stamp, self._created_at)

    # --------------------------------------------------------------- identity
    @property
    def id(self) -> str:
        return self._id

    @property
    def system_prompt(self) -> Optional[str]:
        return self._system_prompt

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Conversation):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __len__(self) -> int:
        return len(self._messages)

    def __repr__(self) -> str:
        return f"Conversation(id={self._id!r}, messages={len(self._messages)})"

    # ------------------------------------------------------------------ reads
    @property
    def messages(self) -> Tuple[Message, ...]:
        """Stored messages, oldest first (system prompt excluded)."""
        return self._messages

    @property
    def all_messages(self) -> Tuple[Message, ...]:
        """Materialized context: synthetic system message, then the history.

        Built fresh on every access. The system message has the stable id
        ``"<conversation id>:system"`` and the conversation creation time, so
        repeated reads compare equal.
        """
        if self._system_prompt:
            system = Message.system(self._system_prompt, id=f"{self._id}:system", created_at=self._created_at)
            return (system,) + self._messages
        return self._messages

    @property
    def last_message(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def last(self, n: int) -> Tuple[Message, ...]:
        if n <= 0:
            return ()
        return self._messages[-n:]

    # -------------------------------------------------------------- mutation
    def _commit(self, messages: Tuple[Message, ...]) -> None:
        now = _utcnow()
        self._messages, self._updated_at = messages, max(now, self._updated_at)

    def append(self, message: Message) -> Message:
        if not isinstance(message, Message):
            raise TypeError(f"expected Message, got {type(message).__name__}")
        self._commit(self._messages + (message,))
        return message

    def remove(self, message_id: str) -> bool:
        """Remove the message with ``message_id``; False when absent."""
        for index, msg in enumerate(self._messages):
            if msg.id == message_id:
                self._commit(self._messages[:index] + self._messages[index + 1 :])
                return True
        return False

    def replace_prefix(self, count: int, replacement: Message) -> None:
        """Replace the ``count`` oldest messages with ``replacement``."""
        count = max(0, min(count, len(self._messages)))
        self._commit((replacement,) + self._messages[count:])

    def clear(self) -> None:
        self._commit(())

    def truncate(self, max_messages: int) -> int:
        """Keep only the newest ``max_messages``; return how many were dropped."""
        if max_messages < 0:
            raise ValueError("max_messages must be >= 0")
        dropped = len(self._messages) - max_messages
        if dropped <= 0:
            return 0
        self._commit(self._messages[dropped:])
        return dropped

    def copy(
        self,
        *,
        id: Optional[str] = None,  # noqa: A002
        system_prompt: Any = _UNSET,
        title: Any = _UNSET,
        messages: Optional[Iterable[Message]] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> "Conversation":
        """Return a new conversation with the given fields replaced."""
        return Conversation(
            id=id or self._id,
            system_prompt=self._system_prompt if system_prompt is _UNSET else system_prompt,
            title=self.title if title is _UNSET else title,
            messages=self._messages if messages is None else messages,
            metadata=self.metadata if metadata is None else metadata,
            created_at=self._created_at,
            updated_at=self._updated_at,
        )

    # --------------------------------------------------------- serialization
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self._id,
            "title": self.title,
            "system_prompt": self._system_prompt,
            "messages": [m.to_dict() for m in self._messages],
            "created_at": self._created_at.isoformat(),
            "updated_at": self._updated_at.isoformat(),
            "metadata": dict(self.metadata),
        }

    def to_json(self, **kwargs: Any) -> str:
        kwargs.setdefault("ensure_ascii", False)
        return json.dumps(self.to_dict(), default=str, **kwargs)

    @classmethod
    def _from_document(cls, doc: ConversationDocumentDTO) -> "Conversation":
        return cls(
            id=doc.id,
            system_prompt=doc.system_prompt,
            title=doc.title,
            messages=[m.to_message() for m in doc.messages],
            metadata=doc.metadata,
            created_at=doc.created_at,
            updated_at=doc.updated_at,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Conversation":
        """Validate and load a conversation document.

        Raises ``pydantic.ValidationError`` for shape errors and
        ``InvalidContentError`` for content-part invariant violations.
        """
        return cls._from_document(ConversationDocumentDTO.model_validate(dict(data)))

    @classmethod
    def from_json(cls, raw: str) -> "Conversation":
        return cls._from_document(ConversationDocumentDTO.model_validate_json(raw))


__all__ = ["Conversation"]
