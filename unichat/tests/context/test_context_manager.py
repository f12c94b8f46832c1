"""ContextWindowManager budget enforcement and eviction policies.

"hello world" estimates at 3 tokens, so each such message costs 7 with the
per-message overhead and a list of ``n`` of them costs ``7n + 3``.
"""
from __future__ import annotations

import pytest

from unichat.base.context import (
    ContextUpdateType,
    ContextWindowManager,
    EvictionPolicy,
)
from unichat.base.models import Message, Role
from unichat.base.tokens import estimate_message_tokens

HELLO = "hello world"


def test_invalid_budgets_are_rejected():
    with pytest.raises(ValueError):
        ContextWindowManager(max_tokens=0)
    with pytest.raises(ValueError):
        ContextWindowManager(max_tokens=100, reserved_tokens=-1)
    with pytest.raises(ValueError):
        ContextWindowManager(max_tokens=100, reserved_tokens=100)
    with pytest.raises(ValueError):
        ContextWindowManager(max_tokens=100, reserved_tokens=0, policy="fifo")


def test_budget_is_held_after_every_append():
    mgr = ContextWindowManager(max_tokens=100, reserved_tokens=0, system_prompt="You are helpful.")
    for i in range(10):
        mgr.add_user_message(f"question number {i} about something fairly long and wordy")
        mgr.add_assistant_message(f"answer number {i} with a few extra words in it")
        assert mgr.estimated_tokens <= mgr.budget  # nosec B101
        assert len(mgr.conversation) > 0  # nosec B101
    assert mgr.available_tokens >= 0  # nosec B101
    assert mgr.messages[0].role is Role.SYSTEM  # nosec B101


def test_sliding_window_drops_user_assistant_pair():
    mgr = ContextWindowManager(max_tokens=20, reserved_tokens=0)
    mgr.add_user_message(HELLO)
    mgr.add_assistant_message(HELLO)
    assert len(mgr.conversation) == 2  # nosec B101

    last = mgr.add_user_message(HELLO)
    assert mgr.conversation.messages == (last,)  # nosec B101
    assert mgr.estimated_tokens == 10  # nosec B101


def test_truncate_oldest_drops_single_message():
    mgr = ContextWindowManager(max_tokens=20, reserved_tokens=0, policy=EvictionPolicy.TRUNCATE_OLDEST)
    mgr.add_user_message(HELLO)
    reply = mgr.add_assistant_message(HELLO)
    last = mgr.add_user_message(HELLO)
    assert mgr.conversation.messages == (reply, last)  # nosec B101


def test_truncate_oldest_skips_stored_system_messages():
    mgr = ContextWindowManager(max_tokens=20, reserved_tokens=0, policy="truncate_oldest")
    rules = mgr.add_message(Message.system("rules"))
    mgr.add_user_message(HELLO)
    last = mgr.add_user_message(HELLO)
    assert mgr.conversation.messages == (rules, last)  # nosec B101


def test_sliding_window_without_user_messages_drops_oldest():
    mgr = ContextWindowManager(max_tokens=20, reserved_tokens=0)
    mgr.add_assistant_message(HELLO)
    second = mgr.add_assistant_message(HELLO)
    third = mgr.add_assistant_message(HELLO)
    assert mgr.conversation.messages == (second, third)  # nosec B101


def test_enforcement_is_idempotent():
    mgr = ContextWindowManager(max_tokens=30, reserved_tokens=0)
    for _ in range(6):
        mgr.add_user_message(HELLO)
    before = mgr.conversation.messages
    seen = []
    mgr.subscribe(seen.append)
    first = mgr.prepare_for_request()
    second = mgr.prepare_for_request()
    assert first == second  # nosec B101
    assert mgr.conversation.messages == before  # nosec B101
    assert seen == []  # nosec B101


def test_prepare_with_system_prompt_is_repeatable():
    mgr = ContextWindowManager(max_tokens=200, reserved_tokens=0, system_prompt="You are helpful.")
    mgr.add_user_message(HELLO)
    first = mgr.prepare_for_request()
    assert first == mgr.prepare_for_request()  # nosec B101
    assert first[0].role is Role.SYSTEM  # nosec B101


def test_updates_follow_mutation_order():
    mgr = ContextWindowManager(max_tokens=20, reserved_tokens=0)
    seen = []
    mgr.subscribe(seen.append)
    mgr.add_user_message(HELLO)
    mgr.add_assistant_message(HELLO)
    mgr.add_user_message(HELLO)
    assert [u.type for u in seen] == [  # nosec B101
        ContextUpdateType.MESSAGE_ADDED,
        ContextUpdateType.MESSAGE_ADDED,
        ContextUpdateType.MESSAGE_ADDED,
        ContextUpdateType.MESSAGE_TRUNCATED,
    ]
    assert seen[2].message_count == 3  # nosec B101
    assert seen[-1].message_count == 1  # nosec B101
    assert seen[-1].estimated_tokens == mgr.estimated_tokens  # nosec B101


def test_unsubscribe_and_close_stop_delivery():
    mgr = ContextWindowManager(max_tokens=200, reserved_tokens=0)
    seen = []
    unsubscribe = mgr.subscribe(seen.append)
    mgr.add_user_message(HELLO)
    unsubscribe()
    mgr.add_user_message(HELLO)
    assert len(seen) == 1  # nosec B101

    with mgr:
        mgr.subscribe(seen.append)
    mgr.add_user_message(HELLO)
    assert len(seen) == 1  # nosec B101
    with pytest.raises(RuntimeError):
        mgr.subscribe(seen.append)


def test_failing_listener_does_not_block_others():
    mgr = ContextWindowManager(max_tokens=200, reserved_tokens=0)
    seen = []

    def broken(update):
        raise RuntimeError("listener exploded")

    mgr.subscribe(broken)
    mgr.subscribe(seen.append)
    msg = mgr.add_user_message(HELLO)
    assert mgr.conversation.messages == (msg,)  # nosec B101
    assert [u.type for u in seen] == [ContextUpdateType.MESSAGE_ADDED]  # nosec B101


def test_remove_clear_and_reset_publish_updates():
    mgr = ContextWindowManager(max_tokens=200, reserved_tokens=0, system_prompt="original")
    seen = []
    mgr.subscribe(seen.append)
    msg = mgr.add_user_message(HELLO)
    assert mgr.remove_message(msg.id)  # nosec B101
    assert not mgr.remove_message("missing")  # nosec B101
    mgr.add_user_message(HELLO)
    mgr.clear()
    old_id = mgr.conversation.id
    mgr.reset("replacement")
    assert mgr.system_prompt == "replacement"  # nosec B101
    assert mgr.conversation.id != old_id  # nosec B101
    mgr.reset()
    assert mgr.system_prompt == "original"  # nosec B101
    assert [u.type for u in seen] == [  # nosec B101
        ContextUpdateType.MESSAGE_ADDED,
        ContextUpdateType.MESSAGE_REMOVED,
        ContextUpdateType.MESSAGE_ADDED,
        ContextUpdateType.CLEARED,
        ContextUpdateType.RESET,
        ContextUpdateType.RESET,
    ]


def test_oversized_system_prompt_empties_history_without_raising():
    mgr = ContextWindowManager(max_tokens=50, reserved_tokens=0, system_prompt="word " * 100)
    mgr.add_user_message(HELLO)
    assert len(mgr.conversation) == 0  # nosec B101
    assert mgr.available_tokens < 0  # nosec B101
    assert [m.role for m in mgr.prepare_for_request()] == [Role.SYSTEM]  # nosec B101


def test_existing_conversation_is_enforced_on_wrap():
    from unichat.base.context import Conversation

    conv = Conversation(system_prompt="sys", messages=[Message.user(HELLO) for _ in range(10)])
    mgr = ContextWindowManager(max_tokens=40, reserved_tokens=0, conversation=conv)
    assert mgr.system_prompt == "sys"  # nosec B101
    assert estimate_message_tokens(mgr.messages) <= 40  # nosec B101
    assert len(mgr.conversation) > 0  # nosec B101


def test_from_config_uses_environment(monkeypatch):
    monkeypatch.setenv("UNICHAT_MAX_TOKENS", "500")
    monkeypatch.setenv("UNICHAT_RESERVED_TOKENS", "100")
    monkeypatch.setenv("UNICHAT_POLICY", "truncate_oldest")
    monkeypatch.setenv("UNICHAT_SYSTEM_PROMPT", "Be kind.")
    mgr = ContextWindowManager.from_config()
    assert mgr.budget == 400  # nosec B101
    assert mgr.policy is EvictionPolicy.TRUNCATE_OLDEST  # nosec B101
    assert mgr.system_prompt == "Be kind."  # nosec B101
    assert ContextWindowManager.from_config({"max_tokens": 2000}).max_tokens == 2000  # nosec B101


def test_for_model_sizes_budget():
    mgr = ContextWindowManager.for_model("gpt-4o-2024-08-06", reserved_tokens=4000)
    assert mgr.max_tokens == 128000  # nosec B101
    assert mgr.budget == 124000  # nosec B101
