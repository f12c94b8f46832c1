"""Pytest configuration for the unichat test suite.

Isolates every test from the host environment: ``UNICHAT_*`` variables are
removed and the external-config cache is reset, and pooled HTTP clients are
closed afterwards.
"""

from __future__ import annotations

import os
from typing import Iterator

import pytest

from unichat.base.http import close_all_clients
from unichat.config import reset_config_cache


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop ambient ``UNICHAT_*`` settings for the duration of a test."""

    for name in list(os.environ):
        if name.startswith("UNICHAT_") and name != "UNICHAT_LOG_LEVEL":
            monkeypatch.delenv(name, raising=False)
    reset_config_cache()
    yield
    reset_config_cache()


@pytest.fixture(scope="session", autouse=True)
def close_clients_after_session() -> Iterator[None]:
    yield
    close_all_clients()
