"""Unified configuration layer.

Goals
-----
* Centralize defaults (context budget, provider models and base URLs).
* Merge sources in a predictable order (later wins):
    1. Built-in defaults
    2. Optional external config file (JSON or YAML) pointed to by UNICHAT_CONFIG_FILE
    3. Environment variables
    4. In-code overrides passed to the helper

Environment Variable Conventions
--------------------------------
Context: UNICHAT_MAX_TOKENS, UNICHAT_RESERVED_TOKENS, UNICHAT_POLICY,
UNICHAT_SYSTEM_PROMPT.
Providers: <PROVIDER>_MODEL, <PROVIDER>_BASE_URL (e.g. OPENAI_MODEL).

External Config File
--------------------
JSON is tried first, then YAML. Structure example:

```
context:
  max_tokens: 16000
  reserved_tokens: 2000
  policy: truncate_oldest
anthropic:
  model: claude-3-5-haiku-latest
```

Public API
----------
* get_context_config(overrides: dict | None = None) -> dict
* get_provider_config(provider: str, overrides: dict | None = None) -> dict
* get_dialect(provider: str) -> Dialect
* reset_config_cache() -> None
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .defaults import (
    ANTHROPIC_DEFAULT_BASE_URL,
    ANTHROPIC_DEFAULT_MODEL,
    CONTEXT_DEFAULT_MAX_TOKENS,
    CONTEXT_DEFAULT_POLICY,
    CONTEXT_DEFAULT_RESERVED_TOKENS,
    DEEPSEEK_DEFAULT_BASE_URL,
    DEEPSEEK_DEFAULT_MODEL,
    GEMINI_DEFAULT_BASE_URL,
    GEMINI_DEFAULT_MODEL,
    OPENAI_DEFAULT_BASE_URL,
    OPENAI_DEFAULT_MODEL,
    OPENROUTER_DEFAULT_BASE_URL,
    OPENROUTER_DEFAULT_MODEL,
    PROVIDER_DIALECTS,
    XAI_DEFAULT_BASE_URL,
    XAI_DEFAULT_MODEL,
)

CONFIG_FILE_ENV = "UNICHAT_CONFIG_FILE"

# -------------------- Defaults --------------------

CONTEXT_DEFAULTS: Dict[str, Any] = {
    "max_tokens": CONTEXT_DEFAULT_MAX_TOKENS,
    "reserved_tokens": CONTEXT_DEFAULT_RESERVED_TOKENS,
    "policy": CONTEXT_DEFAULT_POLICY,
    "system_prompt": None,
}

PROVIDER_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "openai": {"model": OPENAI_DEFAULT_MODEL, "base_url": OPENAI_DEFAULT_BASE_URL},
    "openrouter": {"model": OPENROUTER_DEFAULT_MODEL, "base_url": OPENROUTER_DEFAULT_BASE_URL},
    "anthropic": {"model": ANTHROPIC_DEFAULT_MODEL, "base_url": ANTHROPIC_DEFAULT_BASE_URL},
    "gemini": {"model": GEMINI_DEFAULT_MODEL, "base_url": GEMINI_DEFAULT_BASE_URL},
    "deepseek": {"model": DEEPSEEK_DEFAULT_MODEL, "base_url": DEEPSEEK_DEFAULT_BASE_URL},
    "xai": {"model": XAI_DEFAULT_MODEL, "base_url": XAI_DEFAULT_BASE_URL},
}

CONTEXT_ENV_MAP = {
    "max_tokens": "UNICHAT_MAX_TOKENS",
    "reserved_tokens": "UNICHAT_RESERVED_TOKENS",
    "policy": "UNICHAT_POLICY",
    "system_prompt": "UNICHAT_SYSTEM_PROMPT",
}

PROVIDER_ENV_FIELD_MAP = {
    "model": "MODEL",
    "base_url": "BASE_URL",
}

_INT_FIELDS = ("max_tokens", "reserved_tokens")

_FILE_CACHE: Optional[Dict[str, Any]] = None


def reset_config_cache() -> None:
    """Forget the cached external config file (tests switch files)."""
    global _FILE_CACHE
    _FILE_CACHE = None


def _load_external_config() -> Dict[str, Any]:
    global _FILE_CACHE
    if _FILE_CACHE is not None:
        return _FILE_CACHE
    path = os.getenv(CONFIG_FILE_ENV)
    if not path:
        _FILE_CACHE = {}
        return _FILE_CACHE
    p = Path(path)
    if not p.exists():
        _FILE_CACHE = {}
        return _FILE_CACHE
    text = p.read_text(encoding="utf-8")
    # Try JSON first
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError:
            data = {}
    if not isinstance(data, dict):
        data = {}
    _FILE_CACHE = data
    return data


def _coerce_int_field(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    try:
        return int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def get_context_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return merged context-window configuration.

    Merge order (later wins): defaults -> external config ``context`` section
    -> env vars -> overrides. Integer fields are coerced; invalid values raise
    ``ValueError``.
    """
    cfg: Dict[str, Any] = dict(CONTEXT_DEFAULTS)

    file_cfg = _load_external_config().get("context")
    if isinstance(file_cfg, dict):
        cfg |= {k: v for k, v in file_cfg.items() if k in CONTEXT_DEFAULTS}

    for field, env_name in CONTEXT_ENV_MAP.items():
        val = os.getenv(env_name)
        if val is not None and val.strip() != "":
            cfg[field] = val

    if overrides:
        cfg |= {k: v for k, v in overrides.items() if v is not None}

    for field in _INT_FIELDS:
        cfg[field] = _coerce_int_field(field, cfg[field])
    if cfg.get("policy") is not None:
        cfg["policy"] = str(cfg["policy"]).strip().lower()
    return cfg


def get_provider_config(provider: str, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return merged configuration for a provider (model, base_url, dialect).

    Merge order (later wins): defaults -> external config -> env vars -> overrides
    """
    name = (provider or "").lower().strip()
    cfg: Dict[str, Any] = dict(PROVIDER_DEFAULTS.get(name, {}))

    file_cfg = _load_external_config().get(name)
    if isinstance(file_cfg, dict):
        cfg |= file_cfg

    prefix = name.upper()
    for field, suffix in PROVIDER_ENV_FIELD_MAP.items():
        val = os.getenv(f"{prefix}_{suffix}")
        if val is not None:
            cfg[field] = val

    if overrides:
        cfg |= {k: v for k, v in overrides.items() if v is not None}

    cfg.setdefault("dialect", PROVIDER_DIALECTS.get(name))
    return cfg


def get_dialect(provider: str):
    """Return the streaming ``Dialect`` spoken by ``provider``.

    Raises ``ValueError`` for unknown providers.
    """
    # Local import keeps config free of base-layer imports at module load
    from ..base.streaming.dialects import Dialect

    name = (provider or "").lower().strip()
    dialect = PROVIDER_DIALECTS.get(name)
    if dialect is None:
        raise ValueError(f"unknown provider: {provider!r}")
    return Dialect(dialect)


__all__ = [
    "CONFIG_FILE_ENV",
    "CONTEXT_DEFAULTS",
    "PROVIDER_DEFAULTS",
    "get_context_config",
    "get_provider_config",
    "get_dialect",
    "reset_config_cache",
]
