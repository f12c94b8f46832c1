"""
unichat base package

Exports the provider-agnostic conversation model, the context-window manager
and the streaming normalization layer:

- Models: content parts, messages, usage
- Context: conversation store, eviction policies, update feed, manager
- Streaming: SSE framing, dialect decoders, normalizer, accumulator
- Errors: normalized error taxonomy carried on error events
"""

from .errors import ErrorCode, InvalidContentError, ProviderError, classify_exception
from .models import (
    AudioPart,
    ContentPart,
    ContentType,
    DocumentPart,
    FinishReason,
    ImageDetail,
    ImagePart,
    Message,
    Role,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    Usage,
)
from .tokens import estimate_message_tokens, estimate_tokens
from .context import (
    ContextUpdate,
    ContextUpdateType,
    ContextWindowManager,
    Conversation,
    EvictionPolicy,
    Summarizer,
)
from .memory import (
    ConversationMemory,
    InMemoryConversationStore,
    IndexedConversation,
    LimitedConversationStore,
)
from .streaming import (
    Dialect,
    SSELineBuffer,
    StreamAccumulator,
    StreamEvent,
    StreamEventType,
    StreamResult,
    ToolCallDelta,
    accumulate_stream,
    anormalize_stream,
    aunify_stream,
    normalize_stream,
    unify_stream,
)

__all__ = [
    # Errors
    "ErrorCode",
    "InvalidContentError",
    "ProviderError",
    "classify_exception",
    # Models
    "AudioPart",
    "ContentPart",
    "ContentType",
    "DocumentPart",
    "FinishReason",
    "ImageDetail",
    "ImagePart",
    "Message",
    "Role",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
    "Usage",
    # Tokens
    "estimate_tokens",
    "estimate_message_tokens",
    # Context
    "ContextUpdate",
    "ContextUpdateType",
    "ContextWindowManager",
    "Conversation",
    "EvictionPolicy",
    "Summarizer",
    # Memory
    "ConversationMemory",
    "InMemoryConversationStore",
    "IndexedConversation",
    "LimitedConversationStore",
    # Streaming
    "Dialect",
    "SSELineBuffer",
    "StreamAccumulator",
    "StreamEvent",
    "StreamEventType",
    "StreamResult",
    "ToolCallDelta",
    "accumulate_stream",
    "anormalize_stream",
    "aunify_stream",
    "normalize_stream",
    "unify_stream",
]
