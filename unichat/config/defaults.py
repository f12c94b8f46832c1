"""unichat.config.defaults
=======================

Central place for small, stable default values used across the unichat
package. These defaults can be overridden via environment variables or an
external configuration file.

This module avoids importing from other unichat packages to prevent circular
dependencies. Only plain constants live here.
"""

from __future__ import annotations

# ---- Context window ----
CONTEXT_DEFAULT_MAX_TOKENS = 8000
CONTEXT_DEFAULT_RESERVED_TOKENS = 1000
CONTEXT_DEFAULT_POLICY = "sliding_window"

# ---- Provider-specific sane defaults ----
OPENAI_DEFAULT_MODEL = "gpt-4o-mini"
OPENAI_DEFAULT_BASE_URL = "https://api.openai.com/v1"

OPENROUTER_DEFAULT_MODEL = "openrouter/auto"
OPENROUTER_DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"

ANTHROPIC_DEFAULT_MODEL = "claude-3-5-sonnet-latest"
ANTHROPIC_DEFAULT_BASE_URL = "https://api.anthropic.com/v1"

GEMINI_DEFAULT_MODEL = "gemini-1.5-flash"
GEMINI_DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

DEEPSEEK_DEFAULT_MODEL = "deepseek-chat"
DEEPSEEK_DEFAULT_BASE_URL = "https://api.deepseek.com"

XAI_DEFAULT_MODEL = "grok-2-latest"
XAI_DEFAULT_BASE_URL = "https://api.x.ai/v1"

# Streaming wire dialect spoken by each provider.
PROVIDER_DIALECTS = {
    "openai": "openai",
    "openrouter": "openai",
    "deepseek": "openai",
    "xai": "openai",
    "anthropic": "anthropic",
    "gemini": "gemini",
}

# ---- HTTP ----
HTTP_DEFAULT_TIMEOUT_SECONDS = 60.0
HTTP_DEFAULT_MAX_CONNECTIONS = 20
HTTP_DEFAULT_MAX_KEEPALIVE = 10
