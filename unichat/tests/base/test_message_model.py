"""Message factories, role/content co-constraints and serialization."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from unichat.base.errors import InvalidContentError
from unichat.base.models import (
    ImagePart,
    Message,
    Role,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)


def test_factories_set_roles_and_parts():
    sys_msg = Message.system("Be brief.")
    user = Message.user("Hi", name="ana")
    asst = Message.assistant("Hello!")
    tool = Message.tool_result("call_1", "lookup", {"temp": 21})

    assert sys_msg.role is Role.SYSTEM  # nosec B101
    assert user.name == "ana"  # nosec B101
    assert asst.text == "Hello!"  # nosec B101
    assert tool.role is Role.TOOL  # nosec B101
    assert isinstance(tool.content[0], ToolResultPart)  # nosec B101


def test_ids_are_unique_and_timestamps_are_utc():
    a, b = Message.user("a"), Message.user("b")
    assert a.id != b.id  # nosec B101
    assert a.created_at.tzinfo is not None  # nosec B101


def test_mixed_content_sequence_is_coerced():
    msg = Message.user(["look at this", ImagePart.from_url("https://x/y.png")])
    assert len(msg.content) == 2  # nosec B101
    assert isinstance(msg.content[0], TextPart)  # nosec B101
    assert msg.has_images  # nosec B101
    assert not msg.is_text_only  # nosec B101


def test_text_joins_text_parts_with_newlines():
    msg = Message.user(["one", ImagePart.from_url("https://x/y.png"), "two"])
    assert msg.text == "one\ntwo"  # nosec B101


def test_unsupported_content_is_rejected():
    with pytest.raises(InvalidContentError):
        Message.user(123)  # type: ignore[arg-type]
    with pytest.raises(InvalidContentError):
        Message.user(["ok", 3.5])  # type: ignore[list-item]


def test_system_message_needs_single_text_part():
    with pytest.raises(InvalidContentError):
        Message(role=Role.SYSTEM, content=(TextPart("a"), TextPart("b")))
    with pytest.raises(InvalidContentError):
        Message(role=Role.SYSTEM, content=(ImagePart.from_url("https://x/y.png"),))


def test_tool_message_needs_single_tool_result():
    with pytest.raises(InvalidContentError):
        Message(role=Role.TOOL, content=(TextPart("42"),))
    with pytest.raises(InvalidContentError):
        Message.user(ToolResultPart(tool_call_id="call_1", name="lookup", result=1))


def test_tool_calls_only_on_assistant():
    call = ToolCallPart(id="call_1", name="lookup", arguments={"q": "x"})
    assert Message.assistant("", tool_calls=[call]).has_tool_calls  # nosec B101
    with pytest.raises(InvalidContentError):
        Message(role=Role.USER, content=(TextPart("hi"),), tool_calls=(call,))


def test_unknown_role_is_rejected():
    with pytest.raises(InvalidContentError):
        Message(role="robot", content=(TextPart("hi"),))  # type: ignore[arg-type]


def test_replace_returns_copy():
    original = Message.user("draft")
    edited = original.replace(content=(TextPart("final"),))
    assert original.text == "draft"  # nosec B101
    assert edited.text == "final"  # nosec B101
    assert edited.id == original.id  # nosec B101


def test_dict_round_trip_preserves_fields():
    call = ToolCallPart(id="call_1", name="lookup", arguments={"q": "x"})
    msg = Message.assistant("calling", tool_calls=[call], metadata={"k": "v"})
    restored = Message.from_dict(msg.to_dict())
    assert restored.id == msg.id  # nosec B101
    assert restored.role is Role.ASSISTANT  # nosec B101
    assert restored.text == "calling"  # nosec B101
    assert restored.tool_calls == (call,)  # nosec B101
    assert restored.created_at == msg.created_at  # nosec B101
    assert dict(restored.metadata) == {"k": "v"}  # nosec B101
    assert restored == msg  # nosec B101


def test_messages_are_hashable_with_read_only_metadata():
    source = {"k": "v"}
    msg = Message.user("hi", metadata=source)
    with_tools = Message.assistant("", tool_calls=[ToolCallPart(id="c", name="f", arguments={"a": 1})])
    assert len({msg, msg.replace(), with_tools}) == 2  # nosec B101
    assert {msg: 1}[Message.from_dict(msg.to_dict())] == 1  # nosec B101

    source["k"] = "changed"
    assert msg.metadata["k"] == "v"  # nosec B101
    with pytest.raises(TypeError):
        msg.metadata["k"] = "x"  # type: ignore[index]


def test_from_dict_accepts_plain_string_and_naive_timestamp():
    msg = Message.from_dict({"role": "user", "content": "hi", "created_at": "2024-01-02T03:04:05"})
    assert msg.text == "hi"  # nosec B101
    assert msg.created_at == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)  # nosec B101
