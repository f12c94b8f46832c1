"""Token-budgeted context-window manager.

:class:`ContextWindowManager` wraps a :class:`Conversation` and keeps the
materialized context (system prompt + history) within
``max_tokens - reserved_tokens`` by evicting from the front of the history.
Enforcement runs right after every append and again in
:meth:`ContextWindowManager.prepare_for_request`:

    while estimate(context) > budget and history is non-empty:
        apply the policy once, then re-estimate

Enforcement is idempotent. When the history is empty and the system prompt
alone exceeds the budget, enforcement stops; the overflow is logged at debug
level and visible through ``available_tokens`` going negative.

Every append publishes ``MESSAGE_ADDED`` before enforcement runs, so eviction
updates (``MESSAGE_TRUNCATED``) always follow the append that caused them.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

from ...config import get_context_config
from ..log_support import LogContext
from ..logging import get_logger, log_event
from ..models_parts.content_part import ToolCallPart
from ..models_parts.message import ContentInput, Message
from ..tokens.estimator import estimate_message_tokens
from .conversation import Conversation
from .limits import get_context_limit
from .policies import (
    EvictionPolicy,
    Summarizer,
    coerce_policy,
    sliding_window_victims,
    summary_prefix_length,
    truncate_oldest_victims,
)
from .updates import ContextUpdate, ContextUpdateType, Listener, UpdateFeed

DEFAULT_MAX_TOKENS = 8000
DEFAULT_RESERVED_TOKENS = 1000


class ContextWindowManager:
    """Keeps a conversation within a token budget.

    Attributes:
        max_tokens: Model context window.
        reserved_tokens: Tokens kept free for the response.
        policy: Eviction policy applied when the budget is exceeded.

    Thread safety: not thread-safe; the manager exclusively owns its
    conversation and expects one caller at a time.
    """

    def __init__(
        self,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        reserved_tokens: int = DEFAULT_RESERVED_TOKENS,
        system_prompt: Optional[str] = None,
        policy: EvictionPolicy | str = EvictionPolicy.SLIDING_WINDOW,
        summarizer: Optional[Summarizer] = None,
        logger: Optional[logging.Logger] = None,
        conversation: Optional[Conversation] = None,
    ) -> None:
        if max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {max_tokens}")
        if reserved_tokens < 0:
            raise ValueError(f"reserved_tokens must be >= 0, got {reserved_tokens}")
        if reserved_tokens >= max_tokens:
            raise ValueError(
                f"reserved_tokens ({reserved_tokens}) must be smaller than max_tokens ({max_tokens})"
            )
        self.max_tokens = max_tokens
        self.reserved_tokens = reserved_tokens
        self.policy = coerce_policy(policy)
        self.summarizer = summarizer
        self._logger = logger or get_logger("context.manager")
        if conversation is not None and system_prompt is None:
            system_prompt = conversation.system_prompt
        self._default_system_prompt = system_prompt
        self._conversation = conversation if conversation is not None else Conversation(system_prompt=system_prompt)
        self._feed = UpdateFeed(logger=self._logger)
        self._fallback_warned = False
        if len(self._conversation):
            self._enforce()

    # ----------------------------------------------------------- constructors
    @classmethod
    def from_config(
        cls,
        overrides: Optional[Mapping[str, Any]] = None,
        *,
        summarizer: Optional[Summarizer] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "ContextWindowManager":
        """Build a manager from :func:`unichat.config.get_context_config`."""
        cfg = get_context_config(dict(overrides) if overrides else None)
        return cls(
            max_tokens=cfg["max_tokens"],
            reserved_tokens=cfg["reserved_tokens"],
            system_prompt=cfg.get("system_prompt"),
            policy=cfg["policy"],
            summarizer=summarizer,
            logger=logger,
        )

    @classmethod
    def for_model(
        cls,
        model: str,
        *,
        reserved_tokens: int = DEFAULT_RESERVED_TOKENS,
        **kwargs: Any,
    ) -> "ContextWindowManager":
        """Build a manager sized to ``model``'s context window."""
        return cls(max_tokens=get_context_limit(model), reserved_tokens=reserved_tokens, **kwargs)

    # ------------------------------------------------------------------ reads
    @property
    def budget(self) -> int:
        """Token ceiling for the materialized context."""
        return self.max_tokens - self.reserved_tokens

    @property
    def system_prompt(self) -> Optional[str]:
        return self._conversation.system_prompt

    @property
    def conversation(self) -> Conversation:
        """The wrapped conversation. Mutate it only through the manager."""
        return self._conversation

    @property
    def messages(self) -> Tuple[Message, ...]:
        """Materialized context, system prompt first."""
        return self._conversation.all_messages

    @property
    def estimated_tokens(self) -> int:
        return estimate_message_tokens(self._conversation.all_messages)

    @property
    def available_tokens(self) -> int:
        """``max_tokens - estimated - reserved_tokens``; may be negative."""
        return self.max_tokens - self.estimated_tokens - self.reserved_tokens

    def _log_ctx(self) -> LogContext:
        return LogContext(conversation_id=self._conversation.id)

    # -------------------------------------------------------------- mutation
    def add_user_message(self, content: ContentInput, name: Optional[str] = None, **kwargs: Any) -> Message:
        return self._add(Message.user(content, name=name, **kwargs))

    def add_assistant_message(
        self,
        content: ContentInput = "",
        tool_calls: Optional[Sequence[ToolCallPart]] = None,
        **kwargs: Any,
    ) -> Message:
        return self._add(Message.assistant(content, tool_calls=tool_calls, **kwargs))

    def add_tool_result(self, tool_call_id: str, name: str, result: Any, is_error: bool = False) -> Message:
        return self._add(Message.tool_result(tool_call_id, name, result, is_error=is_error))

    def add_message(self, message: Message) -> Message:
        return self._add(message)

    def _add(self, message: Message) -> Message:
        self._conversation.append(message)
        self._publish(ContextUpdateType.MESSAGE_ADDED)
        self._enforce()
        return message

    def remove_message(self, message_id: str) -> bool:
        """Remove a message by id; returns False when it is not stored."""
        removed = self._conversation.remove(message_id)
        if removed:
            self._publish(ContextUpdateType.MESSAGE_REMOVED)
        return removed

    def clear(self) -> None:
        self._conversation.clear()
        self._publish(ContextUpdateType.CLEARED)

    def reset(self, system_prompt: Optional[str] = None) -> None:
        """Replace the conversation, discarding history.

        Without ``system_prompt`` the manager's original prompt is reused.
        """
        prompt = system_prompt if system_prompt is not None else self._default_system_prompt
        self._conversation = Conversation(system_prompt=prompt)
        self._publish(ContextUpdateType.RESET)

    def prepare_for_request(self) -> Tuple[Message, ...]:
        """Re-enforce the budget and return the materialized context."""
        self._enforce()
        return self._conversation.all_messages

    # ---------------------------------------------------------------- updates
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self._feed.subscribe(listener)

    def close(self) -> None:
        self._feed.close()

    def __enter__(self) -> "ContextWindowManager":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _publish(self, kind: ContextUpdateType) -> None:
        if not self._feed.listener_count:
            return
        self._feed.publish(
            ContextUpdate(
                type=kind,
                message_count=len(self._conversation),
                estimated_tokens=self.estimated_tokens,
            )
        )

    # ------------------------------------------------------------ enforcement
    def _enforce(self) -> int:
        """Evict until the context fits; return the number of messages removed."""
        target = self.budget
        evicted = 0
        while len(self._conversation) and self.estimated_tokens > target:
            evicted += self._evict_once()
        if not len(self._conversation) and self.estimated_tokens > target:
            log_event(
                self._logger,
                "context.budget.unsatisfiable",
                self._log_ctx(),
                level=logging.DEBUG,
                estimated_tokens=self.estimated_tokens,
                budget=target,
            )
        return evicted

    def _evict_once(self) -> int:
        if self.policy is EvictionPolicy.SUMMARIZE:
            replaced = self._try_summarize()
            if replaced:
                return replaced
            victims = truncate_oldest_victims(self._conversation.messages)
        elif self.policy is EvictionPolicy.TRUNCATE_OLDEST:
            victims = truncate_oldest_victims(self._conversation.messages)
        else:
            victims = sliding_window_victims(self._conversation.messages)
        return self._remove_indices(victims)

    def _remove_indices(self, victims: List[int]) -> int:
        stored = self._conversation.messages
        ids = [stored[i].id for i in victims]
        for message_id in ids:
            self._conversation.remove(message_id)
        log_event(
            self._logger,
            "context.evict",
            self._log_ctx(),
            level=logging.DEBUG,
            policy=self.policy.value,
            removed=len(ids),
            message_ids=ids,
            remaining=len(self._conversation),
        )
        self._publish(ContextUpdateType.MESSAGE_TRUNCATED)
        return len(ids)

    def _warn_fallback(self, reason: str) -> None:
        if self._fallback_warned:
            return
        self._fallback_warned = True
        log_event(
            self._logger,
            "context.summarize.fallback",
            self._log_ctx(),
            level=logging.WARNING,
            reason=reason,
            fallback=EvictionPolicy.TRUNCATE_OLDEST.value,
        )

    def _try_summarize(self) -> int:
        """Replace the older half of the history with a synopsis.

        Returns the number of messages replaced, or 0 when the caller should
        fall back to truncation.
        """
        if self.summarizer is None:
            self._warn_fallback("no_summarizer")
            return 0
        stored = self._conversation.messages
        prefix = summary_prefix_length(stored)
        synopsis = self.summarizer(stored[:prefix])
        if synopsis is None:
            self._warn_fallback("summarizer_declined")
            return 0
        before = self.estimated_tokens
        candidate = self._conversation.all_messages[: len(self._conversation.all_messages) - len(stored)]
        after = estimate_message_tokens(candidate + (synopsis,) + stored[prefix:])
        if after >= before:
            self._warn_fallback("summary_not_smaller")
            return 0
        self._conversation.replace_prefix(prefix, synopsis)
        log_event(
            self._logger,
            "context.evict",
            self._log_ctx(),
            level=logging.DEBUG,
            policy=self.policy.value,
            removed=prefix,
            summarized=True,
            remaining=len(self._conversation),
        )
        self._publish(ContextUpdateType.MESSAGE_TRUNCATED)
        return prefix


__all__ = ["ContextWindowManager", "DEFAULT_MAX_TOKENS", "DEFAULT_RESERVED_TOKENS"]
