"""Observable update feed for the context-window manager.

Each manager owns one :class:`UpdateFeed`. Listeners are plain callables
invoked synchronously, in subscription order, once per mutation and in the
order mutations happen. A listener that raises is logged
(``context.listener.error``) and does not affect the mutation or the other
listeners.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from ..logging import get_logger, log_event


class ContextUpdateType(str, Enum):
    MESSAGE_ADDED = "message_added"
    MESSAGE_REMOVED = "message_removed"
    MESSAGE_TRUNCATED = "message_truncated"
    CLEARED = "cleared"
    RESET = "reset"


@dataclass(frozen=True)
class ContextUpdate:
    """Snapshot published after a mutation."""

    type: ContextUpdateType
    message_count: int
    estimated_tokens: int


Listener = Callable[[ContextUpdate], None]


class UpdateFeed:
    """Per-manager listener list."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._listeners: List[Listener] = []
        self._logger = logger or get_logger("context.updates")
        self._closed = False

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that unsubscribes it."""
        if self._closed:
            raise RuntimeError("update feed is closed")
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, update: ContextUpdate) -> None:
        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception as exc:  # noqa: BLE001 - listeners are fire-and-forget
                log_event(
                    self._logger,
                    "context.listener.error",
                    level=logging.WARNING,
                    update=update.type.value,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )

    def close(self) -> None:
        """Drop all listeners; later publishes are no-ops."""
        self._listeners.clear()
        self._closed = True


__all__ = ["ContextUpdateType", "ContextUpdate", "Listener", "UpdateFeed"]
