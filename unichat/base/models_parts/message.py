"""
Message model used by the conversation store and the context manager.

Defines the immutable :class:`Message` dataclass. Content is always stored as
a tuple of typed content parts; factories accept plain strings for the common
case. Role and content-part types are co-constrained and validated when the
message is built:

- ``system`` messages carry exactly one text part;
- ``tool`` messages carry exactly one :class:`ToolResultPart`;
- ``tool_calls`` only appear on ``assistant`` messages;
- tool results never appear outside ``tool`` messages.

Messages are never mutated in place; :meth:`Message.replace` returns a copy.
Metadata is exposed as a read-only mapping. Messages hash by ``id`` so they
can key dicts and sets; equality still compares every field.
"""
from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from ..errors_parts.invalid_content_error import InvalidContentError
from .content_part import (
    MEDIA_PART_TYPES,
    ContentPart,
    ImagePart,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    content_part_from_dict,
)
from .enums import Role

ContentInput = Union[str, ContentPart, Sequence[Union[str, ContentPart]]]

_PART_TYPES = (TextPart, ToolCallPart, ToolResultPart) + MEDIA_PART_TYPES


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def coerce_content(content: ContentInput) -> Tuple[ContentPart, ...]:
    """Normalize caller content into a tuple of content parts.

    Accepts a string, a single part, or a sequence mixing strings and parts.
    Anything else raises :class:`InvalidContentError`.
    """
    if isinstance(content, str):
        return (TextPart(content),)
    if isinstance(content, _PART_TYPES):
        return (content,)
    if isinstance(content, (list, tuple)):
        parts = []
        for item in content:
            if isinstance(item, str):
                parts.append(TextPart(item))
            elif isinstance(item, _PART_TYPES):
                parts.append(item)
            else:
                raise InvalidContentError(f"unsupported content item: {type(item).__name__}", field="content")
        return tuple(parts)
    raise InvalidContentError(f"unsupported content: {type(content).__name__}", field="content")


@dataclass(frozen=True)
class Message:
    """An immutable chat message.

    Attributes:
        role: Author of the message.
        content: Ordered content parts.
        id: Opaque unique identifier (uuid4 hex by default).
        name: Optional sender name.
        tool_calls: Tool invocations requested by an assistant message.
        created_at: Timezone-aware UTC creation time.
        metadata: Free-form caller metadata (read-only view).
    """

    role: Role
    content: Tuple[ContentPart, ...]
    id: str = field(default_factory=_new_id)
    name: Optional[str] = None
    tool_calls: Optional[Tuple[ToolCallPart, ...]] = None
    created_at: datetime = field(default_factory=_utcnow)
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __hash__(self) -> int:
        return hash(self.id)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata or {})))
        if not isinstance(self.role, Role):
            try:
                object.__setattr__(self, "role", Role(self.role))
            except ValueError as exc:
                raise InvalidContentError(f"unknown role: {self.role!r}", field="role") from exc
        if not isinstance(self.content, tuple) or not all(isinstance(p, _PART_TYPES) for p in self.content):
            object.__setattr__(self, "content", coerce_content(self.content))
        if self.tool_calls is not None:
            calls = tuple(self.tool_calls)
            if not all(isinstance(c, ToolCallPart) for c in calls):
                raise InvalidContentError("tool_calls must contain ToolCallPart items", field="tool_calls")
            object.__setattr__(self, "tool_calls", calls)
        if not self.id:
            raise InvalidContentError("message id must be non-empty", field="id")
        self._validate_roles()

    def _validate_roles(self) -> None:
        results = [p for p in self.content if isinstance(p, ToolResultPart)]
        if self.role is Role.SYSTEM:
            if len(self.content) != 1 or not isinstance(self.content[0], TextPart):
                raise InvalidContentError("system message must carry exactly one text part", field="content")
        if self.role is Role.TOOL:
            if len(self.content) != 1 or not results:
                raise InvalidContentError("tool message must carry exactly one tool result part", field="content")
        elif results:
            raise InvalidContentError("tool results are only allowed on tool messages", field="content")
        if self.tool_calls and self.role is not Role.ASSISTANT:
            raise InvalidContentError("only assistant messages may request tool calls", field="tool_calls")

    # ----------------------------------------------------------------- factories
    @classmethod
    def system(cls, text: str, **kwargs: Any) -> "Message":
        return cls(role=Role.SYSTEM, content=(TextPart(text),), **kwargs)

    @classmethod
    def user(cls, content: ContentInput, name: Optional[str] = None, **kwargs: Any) -> "Message":
        return cls(role=Role.USER, content=coerce_content(content), name=name, **kwargs)

    @classmethod
    def assistant(
        cls,
        content: ContentInput = "",
        tool_calls: Optional[Sequence[ToolCallPart]] = None,
        **kwargs: Any,
    ) -> "Message":
        calls = tuple(tool_calls) if tool_calls else None
        return cls(role=Role.ASSISTANT, content=coerce_content(content), tool_calls=calls, **kwargs)

    @classmethod
    def tool_result(
        cls,
        tool_call_id: str,
        name: str,
        result: Any,
        is_error: bool = False,
        **kwargs: Any,
    ) -> "Message":
        part = ToolResultPart(tool_call_id=tool_call_id, name=name, result=result, is_error=is_error)
        return cls(role=Role.TOOL, content=(part,), **kwargs)

    # ------------------------------------------------------------------ helpers
    @property
    def text(self) -> str:
        """Text parts joined with newlines."""
        return "\n".join(p.text for p in self.content if isinstance(p, TextPart))

    @property
    def has_images(self) -> bool:
        return any(isinstance(p, ImagePart) for p in self.content)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    @property
    def is_text_only(self) -> bool:
        return all(isinstance(p, TextPart) for p in self.content)

    def replace(self, **changes: Any) -> "Message":
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "role": self.role.value,
            "content": [p.to_dict() for p in self.content],
            "created_at": self.created_at.isoformat(),
        }
        if self.name is not None:
            out["name"] = self.name
        if self.tool_calls:
            out["tool_calls"] = [c.to_dict() for c in self.tool_calls]
        if self.metadata:
            out["metadata"] = dict(self.metadata)
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Message":
        """Build a message from its :meth:`to_dict` form.

        ``content`` may also be a plain string. Naive timestamps are taken as
        UTC.
        """
        raw_content = data.get("content", "")
        if isinstance(raw_content, str):
            content = coerce_content(raw_content)
        else:
            content = tuple(content_part_from_dict(p) for p in raw_content)
        raw_calls = data.get("tool_calls")
        tool_calls = None
        if raw_calls:
            tool_calls = tuple(
                ToolCallPart(id=c.get("id") or "", name=c.get("name") or "", arguments=c.get("arguments") or {})
                for c in raw_calls
            )
        kwargs: Dict[str, Any] = {}
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        created = data.get("created_at")
        if created:
            kwargs["created_at"] = parse_timestamp(created)
        return cls(
            role=data.get("role"),  # type: ignore[arg-type]
            content=content,
            name=data.get("name"),
            tool_calls=tool_calls,
            metadata=dict(data.get("metadata") or {}),
            **kwargs,
        )


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError as exc:
            raise InvalidContentError(f"invalid timestamp: {value!r}", field="created_at") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = ["Message", "ContentInput", "coerce_content", "parse_timestamp"]
