"""Focused tests for unichat.base.logging.

Covers:
- _parse_level string parsing
- normalized_log_event emits required keys
- log_event drops ``None`` fields unless asked to keep them
"""
from __future__ import annotations

import json
import logging

from unichat.base.log_support import JsonFormatter, LogContext
from unichat.base.logging import (
    REQUIRED_NORMALIZED_KEYS,
    _parse_level,  # type: ignore[attr-defined]
    get_logger,
    log_event,
    normalized_log_event,
)
from unichat.base.models import Usage


class _ListHandler(logging.Handler):
    """Capture log records into a list for assertions."""

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - exercised via tests
        self.messages.append(record.getMessage())


def _collecting_logger(name: str) -> tuple[logging.Logger, _ListHandler]:
    logger = get_logger(name, json_mode=False)
    handler = _ListHandler()
    logger.handlers[:] = [handler]
    return logger, handler


def test_parse_level_variants():
    assert _parse_level(None) == logging.INFO  # nosec B101
    assert _parse_level("debug") == logging.DEBUG  # nosec B101
    assert _parse_level("WARN") == logging.WARNING  # nosec B101
    assert _parse_level("unknown", default=logging.ERROR) == logging.ERROR  # nosec B101


def test_child_loggers_are_namespaced():
    assert get_logger("streaming").name == "unichat.streaming"  # nosec B101
    assert get_logger("unichat.context").name == "unichat.context"  # nosec B101


def test_normalized_log_event_emits_required_keys():
    logger, handler = _collecting_logger("tests.logging.normalized")
    ctx = LogContext(dialect="openai", model="gpt-4o-mini")
    normalized_log_event(
        logger,
        "stream.end",
        ctx,
        phase="finalize",
        error_code="timeout",
        emitted=3,
        tokens=Usage(prompt_tokens=10, completion_tokens=5),
        ignored=None,
    )

    assert handler.messages, "expected a log message"  # nosec B101
    payload = json.loads(handler.messages[-1])
    for key in REQUIRED_NORMALIZED_KEYS:
        assert key in payload  # nosec B101
    assert payload["event"] == "stream.end"  # nosec B101
    assert payload["dialect"] == "openai"  # nosec B101
    assert payload["tokens"]["total_tokens"] == 15  # nosec B101
    assert "ignored" not in payload  # nosec B101


def test_normalized_log_event_keeps_null_tokens():
    logger, handler = _collecting_logger("tests.logging.nulls")
    normalized_log_event(logger, "stream.start", phase="start")
    payload = json.loads(handler.messages[-1])
    assert payload["tokens"] is None  # nosec B101
    assert payload["emitted"] is None  # nosec B101
    assert "error_code" not in payload  # nosec B101


def test_log_event_drops_none_fields():
    logger, handler = _collecting_logger("tests.logging.plain")
    log_event(logger, "context.evict", LogContext(conversation_id="c1"), removed=2, reason=None)
    payload = json.loads(handler.messages[-1])
    assert payload == {"event": "context.evict", "conversation_id": "c1", "removed": 2}  # nosec B101


def test_json_formatter_emits_object_per_record():
    record = logging.LogRecord("unichat.test", logging.WARNING, __file__, 1, '{"event": "x"}', None, None)
    line = JsonFormatter().format(record)
    data = json.loads(line)
    assert data["level"] == "WARNING"  # nosec B101
