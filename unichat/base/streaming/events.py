"""Unified stream event model.

Every dialect decodes into :class:`StreamEvent`. A delivered sequence starts
with exactly one ``start`` event and ends with at most one terminal event
(``done`` or ``error``). A ``done`` whose metadata carries ``interim=True``
only reports finish or usage info seen mid-stream and is not terminal.
Errors travel as data: ``error`` holds a
:class:`~unichat.base.errors.ProviderError` instance, never raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..errors_parts.provider_error import ProviderError
from ..models_parts.enums import FinishReason
from ..models_parts.usage import Usage


class StreamEventType(str, Enum):
    START = "start"
    TEXT_DELTA = "text_delta"
    TOOL_CALL_DELTA = "tool_call_delta"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class ToolCallDelta:
    """Fragment of a tool call, keyed by its position in the response.

    ``arguments_fragment`` is a piece of the JSON argument text to be
    concatenated; dialects that deliver whole calls set ``arguments`` instead.
    """

    index: int
    id: Optional[str] = None
    name: Optional[str] = None
    arguments_fragment: Optional[str] = None
    arguments: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class StreamEvent:
    type: StreamEventType
    text: Optional[str] = None
    tool_call: Optional[ToolCallDelta] = None
    finish_reason: Optional[FinishReason] = None
    usage: Optional[Usage] = None
    error: Optional[ProviderError] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_interim(self) -> bool:
        """A ``done`` that reports finish or usage info mid-stream."""
        return self.type is StreamEventType.DONE and bool(self.metadata.get("interim"))

    @property
    def is_terminal(self) -> bool:
        if self.type is StreamEventType.ERROR:
            return True
        return self.type is StreamEventType.DONE and not self.is_interim

    @classmethod
    def start(cls, **metadata: Any) -> "StreamEvent":
        return cls(StreamEventType.START, metadata=metadata)

    @classmethod
    def text_delta(cls, text: str) -> "StreamEvent":
        return cls(StreamEventType.TEXT_DELTA, text=text)

    @classmethod
    def tool_call_delta(cls, delta: ToolCallDelta) -> "StreamEvent":
        return cls(StreamEventType.TOOL_CALL_DELTA, tool_call=delta)

    @classmethod
    def done(
        cls,
        finish_reason: Optional[FinishReason] = None,
        usage: Optional[Usage] = None,
        **metadata: Any,
    ) -> "StreamEvent":
        return cls(StreamEventType.DONE, finish_reason=finish_reason, usage=usage, metadata=metadata)

    @classmethod
    def failure(cls, error: ProviderError, **metadata: Any) -> "StreamEvent":
        return cls(StreamEventType.ERROR, error=error, metadata=metadata)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view (used for logging and SSE re-emission)."""
        out: Dict[str, Any] = {"type": self.type.value}
        if self.text is not None:
            out["text"] = self.text
        if self.tool_call is not None:
            out["tool_call"] = {
                k: v
                for k, v in {
                    "index": self.tool_call.index,
                    "id": self.tool_call.id,
                    "name": self.tool_call.name,
                    "arguments_fragment": self.tool_call.arguments_fragment,
                    "arguments": dict(self.tool_call.arguments) if self.tool_call.arguments is not None else None,
                }.items()
                if v is not None
            }
        if self.finish_reason is not None:
            out["finish_reason"] = self.finish_reason.value
        if self.usage is not None:
            out["usage"] = self.usage.to_dict()
        if self.error is not None:
            out["error"] = self.error.to_dict()
        if self.metadata:
            out["metadata"] = dict(self.metadata)
        return out


__all__ = ["StreamEventType", "ToolCallDelta", "StreamEvent"]
