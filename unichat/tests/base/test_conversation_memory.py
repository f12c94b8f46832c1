"""In-memory conversation stores."""
from __future__ import annotations

import json

import pydantic
import pytest

from unichat.base.context import Conversation
from unichat.base.memory import (
    ConversationMemory,
    IndexedConversation,
    InMemoryConversationStore,
    LimitedConversationStore,
)
from unichat.base.models import Message


def _conversation(cid: str, *texts: str) -> Conversation:
    return Conversation(id=cid, messages=[Message.user(t) for t in texts])


def test_store_satisfies_protocol():
    assert isinstance(InMemoryConversationStore(), ConversationMemory)  # nosec B101
    assert isinstance(LimitedConversationStore(InMemoryConversationStore()), ConversationMemory)  # nosec B101


def test_save_load_delete():
    store = InMemoryConversationStore()
    store.save(_conversation("c1", "hello"))
    loaded = store.load("c1")
    assert loaded is not None  # nosec B101
    assert [m.text for m in loaded.messages] == ["hello"]  # nosec B101
    assert store.list_ids() == ["c1"]  # nosec B101
    assert store.delete("c1")  # nosec B101
    assert not store.delete("c1")  # nosec B101
    assert store.load("c1") is None  # nosec B101


def test_stored_copy_is_isolated():
    store = InMemoryConversationStore()
    conv = _conversation("c1", "first")
    store.save(conv)
    conv.append(Message.user("second"))
    assert len(store.load("c1")) == 1  # nosec B101

    loaded = store.load("c1")
    loaded.append(Message.user("local only"))
    assert len(store.load("c1")) == 1  # nosec B101


def test_clear_all():
    store = InMemoryConversationStore()
    store.save(_conversation("a"))
    store.save(_conversation("b"))
    store.clear_all()
    assert len(store) == 0  # nosec B101


def test_limited_store_evicts_least_recently_used():
    backing = InMemoryConversationStore()
    store = LimitedConversationStore(backing, max_conversations=2)
    store.save(_conversation("a"))
    store.save(_conversation("b"))
    store.load("a")
    store.save(_conversation("c"))
    assert sorted(store.list_ids()) == ["a", "c"]  # nosec B101
    # re-saving an existing id never evicts
    store.save(_conversation("c", "more"))
    assert sorted(store.list_ids()) == ["a", "c"]  # nosec B101


def test_limited_store_rejects_non_positive_cap():
    with pytest.raises(ValueError):
        LimitedConversationStore(InMemoryConversationStore(), max_conversations=0)


# --------------------------------------------------------------- indexed
def test_indexed_conversation_exposes_conversation_fields():
    conv = Conversation(id="c1", title="Trip", messages=[Message.user("hi")])
    indexed = IndexedConversation(conv, tags=["travel"])
    assert (indexed.id, indexed.title) == ("c1", "Trip")  # nosec B101
    assert indexed.created_at == conv.created_at  # nosec B101
    assert indexed.updated_at == conv.updated_at  # nosec B101
    assert indexed.tags == ("travel",)  # nosec B101
    assert indexed.has_tag("travel")  # nosec B101
    assert (indexed.summary, indexed.pinned, indexed.archived) == (None, False, False)  # nosec B101


def test_indexed_conversation_replace_keeps_original():
    indexed = IndexedConversation(_conversation("c1", "hi"))
    pinned = indexed.replace(pinned=True, summary="Greeting").with_tags(["a", "b"])
    assert not indexed.pinned  # nosec B101
    assert indexed.tags == ()  # nosec B101
    assert pinned.pinned and pinned.summary == "Greeting"  # nosec B101
    assert pinned.tags == ("a", "b")  # nosec B101


def test_indexed_conversation_json_round_trip():
    indexed = IndexedConversation(
        Conversation(id="c1", system_prompt="Be brief.", messages=[Message.user("hi")]),
        tags=["work"],
        summary="Short chat",
        archived=True,
    )
    restored = IndexedConversation.from_json(indexed.to_json())
    assert restored.id == "c1"  # nosec B101
    assert restored.conversation.system_prompt == "Be brief."  # nosec B101
    assert [m.text for m in restored.conversation.messages] == ["hi"]  # nosec B101
    assert (restored.tags, restored.summary, restored.pinned, restored.archived) == (  # nosec B101
        ("work",),
        "Short chat",
        False,
        True,
    )
    assert restored.to_dict() == indexed.to_dict()  # nosec B101


def test_indexed_conversation_omits_unset_summary_and_defaults_on_load():
    data = IndexedConversation(_conversation("c1", "hi")).to_dict()
    assert "summary" not in data  # nosec B101
    loaded = IndexedConversation.from_dict({"conversation": json.loads(json.dumps(data["conversation"], default=str))})
    assert (loaded.tags, loaded.summary, loaded.pinned, loaded.archived) == ((), None, False, False)  # nosec B101


def test_indexed_conversation_rejects_bad_documents():
    with pytest.raises(pydantic.ValidationError):
        IndexedConversation.from_dict({"tags": []})
    with pytest.raises(TypeError):
        IndexedConversation({"id": "c1"})  # type: ignore[arg-type]
