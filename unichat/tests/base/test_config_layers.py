"""Configuration merge order: defaults, file, env, overrides."""
from __future__ import annotations

import json

import pytest

from unichat.base.streaming import Dialect
from unichat.config import (
    CONFIG_FILE_ENV,
    CONTEXT_DEFAULTS,
    get_context_config,
    get_dialect,
    get_provider_config,
    reset_config_cache,
)


def test_context_defaults():
    cfg = get_context_config()
    assert cfg["max_tokens"] == CONTEXT_DEFAULTS["max_tokens"]  # nosec B101
    assert cfg["reserved_tokens"] == CONTEXT_DEFAULTS["reserved_tokens"]  # nosec B101
    assert cfg["policy"] == "sliding_window"  # nosec B101
    assert cfg["system_prompt"] is None  # nosec B101


def test_env_overrides_defaults(monkeypatch):
    monkeypatch.setenv("UNICHAT_MAX_TOKENS", " 16000 ")
    monkeypatch.setenv("UNICHAT_POLICY", "TRUNCATE_OLDEST")
    cfg = get_context_config()
    assert cfg["max_tokens"] == 16000  # nosec B101
    assert cfg["policy"] == "truncate_oldest"  # nosec B101


def test_yaml_file_then_env_then_overrides(monkeypatch, tmp_path):
    path = tmp_path / "unichat.yaml"
    path.write_text(
        "context:\n  max_tokens: 12000\n  reserved_tokens: 500\n  system_prompt: Be brief.\n"
        "anthropic:\n  model: claude-3-5-haiku-latest\n",
        encoding="utf-8",
    )
    monkeypatch.setenv(CONFIG_FILE_ENV, str(path))
    monkeypatch.delenv("ANTHROPIC_MODEL", raising=False)
    reset_config_cache()

    cfg = get_context_config()
    assert cfg["max_tokens"] == 12000  # nosec B101
    assert cfg["reserved_tokens"] == 500  # nosec B101
    assert cfg["system_prompt"] == "Be brief."  # nosec B101

    monkeypatch.setenv("UNICHAT_RESERVED_TOKENS", "700")
    assert get_context_config()["reserved_tokens"] == 700  # nosec B101
    assert get_context_config({"reserved_tokens": 900})["reserved_tokens"] == 900  # nosec B101

    assert get_provider_config("anthropic")["model"] == "claude-3-5-haiku-latest"  # nosec B101


def test_json_file_is_accepted(monkeypatch, tmp_path):
    path = tmp_path / "unichat.json"
    path.write_text(json.dumps({"context": {"policy": "summarize"}}), encoding="utf-8")
    monkeypatch.setenv(CONFIG_FILE_ENV, str(path))
    reset_config_cache()
    assert get_context_config()["policy"] == "summarize"  # nosec B101


def test_missing_file_is_ignored(monkeypatch, tmp_path):
    monkeypatch.setenv(CONFIG_FILE_ENV, str(tmp_path / "absent.yaml"))
    reset_config_cache()
    assert get_context_config()["max_tokens"] == CONTEXT_DEFAULTS["max_tokens"]  # nosec B101


def test_invalid_integer_raises(monkeypatch):
    monkeypatch.setenv("UNICHAT_MAX_TOKENS", "lots")
    with pytest.raises(ValueError):
        get_context_config()
    with pytest.raises(ValueError):
        get_context_config({"max_tokens": True})


def test_provider_config_env_and_dialect(monkeypatch):
    monkeypatch.setenv("OPENROUTER_MODEL", "meta-llama/llama-3-8b")
    cfg = get_provider_config("OpenRouter")
    assert cfg["model"] == "meta-llama/llama-3-8b"  # nosec B101
    assert cfg["dialect"] == "openai"  # nosec B101
    assert get_provider_config("openai", {"base_url": "http://localhost:8080"})["base_url"] == "http://localhost:8080"  # nosec B101


def test_get_dialect():
    assert get_dialect("anthropic") is Dialect.ANTHROPIC  # nosec B101
    assert get_dialect("xai") is Dialect.OPENAI  # nosec B101
    assert get_dialect("gemini") is Dialect.GEMINI  # nosec B101
    with pytest.raises(ValueError):
        get_dialect("nope")
