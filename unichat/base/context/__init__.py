"""Conversation store, eviction policies and the context-window manager."""

from .conversation import Conversation
from .limits import DEFAULT_CONTEXT_LIMIT, MODEL_CONTEXT_LIMITS, get_context_limit
from .manager import ContextWindowManager
from .policies import EvictionPolicy, Summarizer
from .updates import ContextUpdate, ContextUpdateType, UpdateFeed

__all__ = [
    "Conversation",
    "ContextWindowManager",
    "ContextUpdate",
    "ContextUpdateType",
    "UpdateFeed",
    "EvictionPolicy",
    "Summarizer",
    "MODEL_CONTEXT_LIMITS",
    "DEFAULT_CONTEXT_LIMIT",
    "get_context_limit",
]
