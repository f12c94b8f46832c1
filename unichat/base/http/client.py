"""Shared HTTP client pool and the streaming transport boundary.

Purpose:
    Provide a centralized, thread-safe pool of reusable ``httpx.Client``
    instances and adapt streaming ``httpx`` responses into the raw fragment
    sequences consumed by the stream normalizer.

External dependencies:
    - ``httpx`` for the underlying HTTP clients.

Lifecycle & cleanup:
    - Clients are cached by a composite key of ``base_url`` and ``purpose``
      string. Purposes allow distinct pools (e.g., "chat" vs "stream").
    - All clients are closed at interpreter exit via ``atexit``. Libraries or
      tests may also call :func:`close_all_clients` explicitly.

Retries and backoff are out of scope here; a failed request surfaces as a
terminal ``error`` event and the caller decides whether to restart.
"""

from __future__ import annotations

import atexit
import json
import logging
import threading
from typing import Any, AsyncIterator, Dict, Iterator, Optional, Tuple

import httpx

from ...config.defaults import (
    HTTP_DEFAULT_MAX_CONNECTIONS,
    HTTP_DEFAULT_MAX_KEEPALIVE,
    HTTP_DEFAULT_TIMEOUT_SECONDS,
)
from ..errors_parts.classification import classify_exception, status_to_code
from ..errors_parts.error_code import RETRYABLE_CODES
from ..errors_parts.provider_error import ProviderError
from ..log_support import LogContext
from ..logging import get_logger, log_event
from ..streaming.accumulator import aiter_unified_events, iter_unified_events
from ..streaming.dialects import Dialect, coerce_dialect
from ..streaming.events import StreamEvent

# Internal cache keyed by (base_url, purpose)
_CLIENTS: Dict[Tuple[Optional[str], str], httpx.Client] = {}
_LOCK = threading.RLock()

_logger = get_logger("http")

_ERROR_BODY_PREVIEW = 500


def get_httpx_client(base_url: Optional[str], purpose: str) -> httpx.Client:
    """Return a pooled ``httpx.Client`` for the given base URL and purpose.

    Parameters:
        base_url: Optional API base URL set on the client so callers can use
            relative paths. ``None`` groups clients under a shared key.
        purpose: A short string discriminating separate pools (e.g.,
            "chat", "stream"). Keep stable to maximize reuse.

    Thread-safety:
        Safe for concurrent use; per-key creation is guarded by a re-entrant
        lock.
    """
    key = (base_url, purpose)
    client = _CLIENTS.get(key)
    if client is not None and not client.is_closed:
        return client

    with _LOCK:
        client = _CLIENTS.get(key)
        if client is not None and not client.is_closed:
            return client
        limits = httpx.Limits(
            max_connections=HTTP_DEFAULT_MAX_CONNECTIONS,
            max_keepalive_connections=HTTP_DEFAULT_MAX_KEEPALIVE,
        )
        kwargs: Dict[str, Any] = {"timeout": HTTP_DEFAULT_TIMEOUT_SECONDS, "limits": limits}
        if base_url:
            kwargs["base_url"] = base_url
        client = httpx.Client(**kwargs)
        _CLIENTS[key] = client
        return client


def close_all_clients() -> None:
    """Close and clear all pooled HTTP clients."""
    with _LOCK:
        for c in _CLIENTS.values():
            try:
                c.close()
            except Exception:  # nosec B110 - best-effort shutdown; safe to ignore close errors
                pass
        _CLIENTS.clear()


def _cleanup_at_exit() -> None:
    """atexit hook to ensure clients are closed on interpreter exit."""
    close_all_clients()


atexit.register(_cleanup_at_exit)


# ------------------------------------------------------------------ fragments
def iter_response_fragments(response: httpx.Response) -> Iterator[bytes]:
    """Raw byte fragments of a streaming response, as they arrive."""
    yield from response.iter_bytes()


async def aiter_response_fragments(response: httpx.Response) -> AsyncIterator[bytes]:
    async for chunk in response.aiter_bytes():
        yield chunk


def _status_error(status: int, body: bytes, provider: str, model: Optional[str]) -> ProviderError:
    text = body.decode("utf-8", errors="replace")
    message = text[:_ERROR_BODY_PREVIEW] or f"HTTP {status}"
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        payload = None
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict) and err.get("message"):
            message = str(err["message"])
        elif isinstance(err, str) and err:
            message = err
    code = status_to_code(status)
    return ProviderError(
        code=code,
        message=message,
        provider=provider,
        model=model,
        retryable=code in RETRYABLE_CODES,
        raw={"status_code": status, "body": text[:_ERROR_BODY_PREVIEW]},
    )


def _request_failure(exc: Exception, provider: str, model: Optional[str]) -> ProviderError:
    code = classify_exception(exc)
    return ProviderError(
        code=code,
        message=str(exc) or type(exc).__name__,
        provider=provider,
        model=model,
        retryable=code in RETRYABLE_CODES,
        raw=exc,
    )


def _log_failure(error: ProviderError, dialect: Dialect, url: str) -> None:
    log_event(
        _logger,
        "stream.transport.error",
        LogContext(dialect=dialect.value, model=error.model),
        level=logging.WARNING,
        error_code=error.code.value,
        url=url,
        error=error.message,
    )


def stream_sse(
    client: httpx.Client,
    method: str,
    url: str,
    dialect: "Dialect | str",
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    **request_kwargs: Any,
) -> Iterator[StreamEvent]:
    """Open a streaming request and yield unified events.

    Non-2xx responses and failures to open the request become a ``start``
    followed by one terminal ``error`` event.
    """
    resolved = coerce_dialect(dialect)
    name = provider or resolved.value
    try:
        with client.stream(method, url, **request_kwargs) as response:
            if response.status_code >= 400:
                error = _status_error(response.status_code, response.read(), name, model)
                _log_failure(error, resolved, url)
                yield StreamEvent.start(dialect=resolved.value)
                yield StreamEvent.failure(error)
                return
            yield from iter_unified_events(
                iter_response_fragments(response), resolved, provider=name, model=model
            )
    except httpx.HTTPError as exc:
        error = _request_failure(exc, name, model)
        _log_failure(error, resolved, url)
        yield StreamEvent.start(dialect=resolved.value)
        yield StreamEvent.failure(error)


async def astream_sse(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    dialect: "Dialect | str",
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    **request_kwargs: Any,
) -> AsyncIterator[StreamEvent]:
    """Async variant of :func:`stream_sse` for ``httpx.AsyncClient``."""
    resolved = coerce_dialect(dialect)
    name = provider or resolved.value
    try:
        async with client.stream(method, url, **request_kwargs) as response:
            if response.status_code >= 400:
                error = _status_error(response.status_code, await response.aread(), name, model)
                _log_failure(error, resolved, url)
                yield StreamEvent.start(dialect=resolved.value)
                yield StreamEvent.failure(error)
                return
            async for event in aiter_unified_events(
                aiter_response_fragments(response), resolved, provider=name, model=model
            ):
                yield event
    except httpx.HTTPError as exc:
        error = _request_failure(exc, name, model)
        _log_failure(error, resolved, url)
        yield StreamEvent.start(dialect=resolved.value)
        yield StreamEvent.failure(error)


__all__ = [
    "get_httpx_client",
    "close_all_clients",
    "iter_response_fragments",
    "aiter_response_fragments",
    "stream_sse",
    "astream_sse",
]
