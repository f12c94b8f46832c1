"""
Pydantic documents for conversation (de)serialization.

Purpose
-------
Validate an inbound conversation JSON document before it is turned into the
``Conversation`` / ``Message`` dataclasses. Shape errors (missing id, wrong
role, non-list messages, unparseable timestamps) surface as a single
``pydantic.ValidationError``; content-part invariants are enforced afterwards
by the dataclass constructors (``InvalidContentError``).

Document shape::

    {
      "id": "...", "title": null, "system_prompt": "...",
      "messages": [{"id": "...", "role": "user", "content": [...], ...}],
      "created_at": "2024-01-01T00:00:00+00:00",
      "updated_at": "2024-01-01T00:00:00+00:00",
      "metadata": {}
    }
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models_parts.content_part import ToolCallPart, content_part_from_dict
from ..models_parts.message import Message, coerce_content, parse_timestamp

Role = Literal["system", "user", "assistant", "tool"]


class ContentPartDTO(BaseModel):
    """A tagged content part; variant-specific keys are passed through."""

    model_config = ConfigDict(extra="allow")

    type: Literal["text", "image", "image_url", "audio", "document", "tool_call", "tool_result"]

    def to_part(self):
        return content_part_from_dict(self.model_dump())


class ToolCallDTO(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    arguments: Dict[str, Any] = Field(default_factory=dict)


class MessageDTO(BaseModel):
    """One stored message.

    ``content`` is either a plain string or the list of tagged parts produced
    by ``Message.to_dict``.
    """

    id: Optional[str] = None
    role: Role
    content: Union[str, List[ContentPartDTO]] = ""
    name: Optional[str] = None
    tool_calls: Optional[List[ToolCallDTO]] = None
    created_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_message(self) -> Message:
        if isinstance(self.content, str):
            content = coerce_content(self.content)
        else:
            content = tuple(p.to_part() for p in self.content)
        calls = None
        if self.tool_calls:
            calls = tuple(ToolCallPart(id=c.id, name=c.name, arguments=c.arguments) for c in self.tool_calls)
        kwargs: Dict[str, Any] = {}
        if self.id:
            kwargs["id"] = self.id
        if self.created_at is not None:
            kwargs["created_at"] = parse_timestamp(self.created_at)
        return Message(
            role=self.role,  # type: ignore[arg-type]
            content=content,
            name=self.name,
            tool_calls=calls,
            metadata=dict(self.metadata),
            **kwargs,
        )


class ConversationDocumentDTO(BaseModel):
    """Validated conversation document.

    Rules:
        - ``id`` is non-empty.
        - ``updated_at`` is not earlier than ``created_at``.
    """

    id: str = Field(..., min_length=1)
    title: Optional[str] = None
    system_prompt: Optional[str] = None
    messages: List[MessageDTO] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _validate_timestamps(self) -> "ConversationDocumentDTO":
        if parse_timestamp(self.updated_at) < parse_timestamp(self.created_at):
            raise ValueError("updated_at must not be earlier than created_at")
        return self


class IndexedConversationDTO(BaseModel):
    """A conversation document plus index fields (tags, summary, flags)."""

    conversation: ConversationDocumentDTO
    tags: List[str] = Field(default_factory=list)
    summary: Optional[str] = None
    pinned: bool = False
    archived: bool = False


__all__ = [
    "Role",
    "ContentPartDTO",
    "ToolCallDTO",
    "MessageDTO",
    "ConversationDocumentDTO",
    "IndexedConversationDTO",
]
