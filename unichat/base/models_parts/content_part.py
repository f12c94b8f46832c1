"""
Typed content parts carried by messages.

A content part is a tagged union over text, image, audio, document,
tool-call and tool-result variants. Each variant is a frozen dataclass with a
``type`` discriminator and validates its invariants at construction time, so
a self-contradictory part (e.g. an image with neither URL nor inline data)
never reaches the request builder.

Media invariants:
    - exactly one of ``url`` / ``data`` is set (never both, never neither);
    - inline ``data`` needs a ``mime_type``; audio and documents always do.
"""
from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from ..errors_parts.invalid_content_error import InvalidContentError
from .enums import ContentType, ImageDetail


def _check_media_source(kind: str, url: Optional[str], data: Optional[str]) -> None:
    if url is None and data is None:
        raise InvalidContentError(f"{kind} part needs either a url or inline data", field="url")
    if url is not None and data is not None:
        raise InvalidContentError(f"{kind} part cannot carry both a url and inline data", field="data")
    if url is not None and not url.strip():
        raise InvalidContentError(f"{kind} part url must be non-empty", field="url")


@dataclass(frozen=True)
class TextPart:
    """Plain text content."""

    text: str
    type: ContentType = field(default=ContentType.TEXT, init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.text, str):
            raise InvalidContentError("text part requires a string", field="text")

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "text": self.text}


@dataclass(frozen=True)
class ImagePart:
    """Image referenced by URL or carried inline as base64."""

    url: Optional[str] = None
    data: Optional[str] = None
    mime_type: Optional[str] = None
    detail: ImageDetail = ImageDetail.AUTO
    type: ContentType = field(default=ContentType.IMAGE, init=False)

    def __post_init__(self) -> None:
        _check_media_source("image", self.url, self.data)
        if self.data is not None and not self.mime_type:
            raise InvalidContentError("inline image data requires a mime_type", field="mime_type")
        if not isinstance(self.detail, ImageDetail):
            try:
                object.__setattr__(self, "detail", ImageDetail(self.detail))
            except ValueError as exc:
                raise InvalidContentError(f"unknown image detail: {self.detail!r}", field="detail") from exc

    @classmethod
    def from_url(cls, url: str, *, detail: ImageDetail = ImageDetail.AUTO) -> "ImagePart":
        return cls(url=url, detail=detail)

    @classmethod
    def from_base64(cls, data: str, *, mime_type: str, detail: ImageDetail = ImageDetail.AUTO) -> "ImagePart":
        return cls(data=data, mime_type=mime_type, detail=detail)

    @classmethod
    def from_bytes(cls, raw: bytes, *, mime_type: str, detail: ImageDetail = ImageDetail.AUTO) -> "ImagePart":
        return cls(data=base64.b64encode(raw).decode("ascii"), mime_type=mime_type, detail=detail)

    @property
    def is_high_detail(self) -> bool:
        return self.detail is ImageDetail.HIGH

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type.value, "detail": self.detail.value}
        if self.url is not None:
            out["url"] = self.url
        else:
            out["data"] = self.data
        if self.mime_type:
            out["mime_type"] = self.mime_type
        return out


@dataclass(frozen=True)
class AudioPart:
    """Audio clip referenced by URL or carried inline as base64."""

    mime_type: str
    url: Optional[str] = None
    data: Optional[str] = None
    type: ContentType = field(default=ContentType.AUDIO, init=False)

    def __post_init__(self) -> None:
        if not self.mime_type:
            raise InvalidContentError("audio part requires a mime_type", field="mime_type")
        _check_media_source("audio", self.url, self.data)

    @classmethod
    def from_url(cls, url: str, *, mime_type: str) -> "AudioPart":
        return cls(mime_type=mime_type, url=url)

    @classmethod
    def from_bytes(cls, raw: bytes, *, mime_type: str) -> "AudioPart":
        return cls(mime_type=mime_type, data=base64.b64encode(raw).decode("ascii"))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type.value, "mime_type": self.mime_type}
        if self.url is not None:
            out["url"] = self.url
        else:
            out["data"] = self.data
        return out


@dataclass(frozen=True)
class DocumentPart:
    """Document (PDF, text file...) referenced by URL or inline base64."""

    mime_type: str
    url: Optional[str] = None
    data: Optional[str] = None
    name: Optional[str] = None
    type: ContentType = field(default=ContentType.DOCUMENT, init=False)

    def __post_init__(self) -> None:
        if not self.mime_type:
            raise InvalidContentError("document part requires a mime_type", field="mime_type")
        _check_media_source("document", self.url, self.data)

    @classmethod
    def from_url(cls, url: str, *, mime_type: str, name: Optional[str] = None) -> "DocumentPart":
        return cls(mime_type=mime_type, url=url, name=name)

    @classmethod
    def from_bytes(cls, raw: bytes, *, mime_type: str, name: Optional[str] = None) -> "DocumentPart":
        return cls(mime_type=mime_type, data=base64.b64encode(raw).decode("ascii"), name=name)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type.value, "mime_type": self.mime_type}
        if self.url is not None:
            out["url"] = self.url
        else:
            out["data"] = self.data
        if self.name is not None:
            out["name"] = self.name
        return out


@dataclass(frozen=True)
class ToolCallPart:
    """A model request to invoke a tool with decoded arguments."""

    id: str
    name: str
    arguments: Mapping[str, Any] = field(default_factory=dict)
    type: ContentType = field(default=ContentType.TOOL_CALL, init=False)

    def __post_init__(self) -> None:
        if not self.id:
            raise InvalidContentError("tool call requires an id", field="id")
        if not self.name:
            raise InvalidContentError("tool call requires a name", field="name")
        if not isinstance(self.arguments, Mapping):
            raise InvalidContentError("tool call arguments must be a mapping", field="arguments")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "id": self.id,
            "name": self.name,
            "arguments": dict(self.arguments),
        }


@dataclass(frozen=True)
class ToolResultPart:
    """The result of a tool call, referencing the call by id."""

    tool_call_id: str
    name: str
    result: Any = None
    is_error: bool = False
    type: ContentType = field(default=ContentType.TOOL_RESULT, init=False)

    def __post_init__(self) -> None:
        if not self.tool_call_id:
            raise InvalidContentError("tool result must reference a tool call id", field="tool_call_id")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "tool_call_id": self.tool_call_id,
            "name": self.name,
            "result": self.result,
            "is_error": self.is_error,
        }


ContentPart = Union[TextPart, ImagePart, AudioPart, DocumentPart, ToolCallPart, ToolResultPart]

MEDIA_PART_TYPES = (ImagePart, AudioPart, DocumentPart)


def content_part_from_dict(data: Mapping[str, Any]) -> ContentPart:
    """Parse the tagged ``to_dict`` form of a content part.

    Also accepts the OpenAI-style ``{"type": "image_url", "image_url": {...}}``
    shape. Unknown discriminators raise :class:`InvalidContentError`.
    """
    if not isinstance(data, Mapping):
        raise InvalidContentError("content part must be an object")
    kind = data.get("type")
    if kind == ContentType.TEXT.value:
        return TextPart(str(data.get("text", "")))
    if kind == ContentType.IMAGE.value:
        return ImagePart(
            url=data.get("url"),
            data=data.get("data"),
            mime_type=data.get("mime_type"),
            detail=data.get("detail") or ImageDetail.AUTO,
        )
    if kind == "image_url":
        image_url = data.get("image_url") or {}
        return ImagePart(url=image_url.get("url"), detail=image_url.get("detail") or ImageDetail.AUTO)
    if kind == ContentType.AUDIO.value:
        return AudioPart(mime_type=data.get("mime_type") or "", url=data.get("url"), data=data.get("data"))
    if kind == ContentType.DOCUMENT.value:
        return DocumentPart(
            mime_type=data.get("mime_type") or "",
            url=data.get("url"),
            data=data.get("data"),
            name=data.get("name"),
        )
    if kind == ContentType.TOOL_CALL.value:
        return ToolCallPart(
            id=data.get("id") or "",
            name=data.get("name") or "",
            arguments=data.get("arguments") or {},
        )
    if kind == ContentType.TOOL_RESULT.value:
        return ToolResultPart(
            tool_call_id=data.get("tool_call_id") or "",
            name=data.get("name") or "",
            result=data.get("result"),
            is_error=bool(data.get("is_error", False)),
        )
    raise InvalidContentError(f"unknown content part type: {kind!r}", field="type")


__all__ = [
    "TextPart",
    "ImagePart",
    "AudioPart",
    "DocumentPart",
    "ToolCallPart",
    "ToolResultPart",
    "ContentPart",
    "MEDIA_PART_TYPES",
    "content_part_from_dict",
]
