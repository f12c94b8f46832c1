"""Conversations annotated for listing and search.

:class:`IndexedConversation` wraps a :class:`Conversation` with the fields a
history sidebar needs: tags, a short summary and pinned / archived flags. It
is an immutable value; :meth:`IndexedConversation.replace` returns a copy.

Serialized form::

    {"conversation": {...}, "tags": [], "summary": "...", "pinned": false, "archived": false}

``summary`` is omitted when unset. Missing tags and flags load as empty /
``False``.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ..context.conversation import Conversation
from ..dto.conversation import IndexedConversationDTO


@dataclass(frozen=True)
class IndexedConversation:
    conversation: Conversation
    tags: Tuple[str, ...] = ()
    summary: Optional[str] = None
    pinned: bool = False
    archived: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.conversation, Conversation):
            raise TypeError(f"expected Conversation, got {type(self.conversation).__name__}")
        object.__setattr__(self, "tags", tuple(self.tags))

    @property
    def id(self) -> str:
        return self.conversation.id

    @property
    def title(self) -> Optional[str]:
        return self.conversation.title

    @property
    def created_at(self) -> datetime:
        return self.conversation.created_at

    @property
    def updated_at(self) -> datetime:
        return self.conversation.updated_at

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def replace(self, **changes: Any) -> "IndexedConversation":
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    def with_tags(self, tags: Sequence[str]) -> "IndexedConversation":
        return self.replace(tags=tuple(tags))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"conversation": self.conversation.to_dict(), "tags": list(self.tags)}
        if self.summary is not None:
            out["summary"] = self.summary
        out["pinned"] = self.pinned
        out["archived"] = self.archived
        return out

    def to_json(self, **kwargs: Any) -> str:
        kwargs.setdefault("ensure_ascii", False)
        return json.dumps(self.to_dict(), default=str, **kwargs)

    @classmethod
    def _from_document(cls, doc: IndexedConversationDTO) -> "IndexedConversation":
        return cls(
            conversation=Conversation._from_document(doc.conversation),
            tags=tuple(doc.tags),
            summary=doc.summary,
            pinned=doc.pinned,
            archived=doc.archived,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IndexedConversation":
        """Validate and load; errors surface as ``pydantic.ValidationError``."""
        return cls._from_document(IndexedConversationDTO.model_validate(dict(data)))

    @classmethod
    def from_json(cls, raw: str) -> "IndexedConversation":
        return cls._from_document(IndexedConversationDTO.model_validate_json(raw))


__all__ = ["IndexedConversation"]
