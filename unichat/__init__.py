"""unichat package

Provider-agnostic conversation core for multiple conversational-AI HTTP
providers.

Purpose:
    Let a caller hold one conversation model and one streaming event model
    while the wire format (request shape, SSE framing, error schema) differs
    per provider.

Public API (re-exported):
    - Version: ``__version__``
    - Context: :class:`ContextWindowManager`, :class:`Conversation`
    - Streaming: :func:`normalize_stream`, :func:`unify_stream`,
      :func:`accumulate_stream`, :class:`Dialect`
    - Errors: :class:`ProviderError`, :class:`ErrorCode`
"""

from .base import *  # noqa: F401,F403
from .base import __all__ as _base_all
from .config import get_context_config, get_dialect, get_provider_config

__version__ = "0.1.0"

__all__ = ["__version__", "get_context_config", "get_dialect", "get_provider_config", *_base_all]
