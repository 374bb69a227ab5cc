import pytest

from voicetime.errors import ExternalStoreError
from voicetime.memory.long_term_store import SQLiteMemoryStore, messages_to_content


@pytest.fixture
def store(tmp_path, provider):
    s = SQLiteMemoryStore(str(tmp_path / "memory.db"), time_provider=provider)
    yield s
    s.close()


def test_store_conversation_enriches_metadata(store, provider):
    result = store.store_conversation(
        "u1",
        [{"role": "system", "content": "Session summary: short chat."}],
        {"category": "session_summary"},
    )
    assert result["id"].startswith("memory_")
    assert result["conversation_id"]

    [record] = store.get_all_user_memories("u1")
    assert record.id == result["id"]
    assert record.content == "Session summary: short chat."
    assert record.metadata["category"] == "session_summary"
    assert record.metadata["time_context"]["timestamp"] == provider.now_millis()
    assert record.metadata["conversation_id"] == result["conversation_id"]


def test_store_conversation_keeps_given_conversation_id(store):
    result = store.store_conversation("u1", [{"role": "user", "content": "hi"}], {"conversation_id": "c-1"})
    assert result["conversation_id"] == "c-1"


def test_multi_message_content_keeps_roles():
    content = messages_to_content([
        {"role": "user", "content": "I love spicy food"},
        {"role": "assistant", "content": "Noted!"},
    ])
    assert content == "user: I love spicy food\nassistant: Noted!"


@pytest.mark.parametrize("messages", [[], [{"role": "robot", "content": "x"}], [{"role": "user", "content": "  "}]])
def test_store_conversation_rejects_bad_input(store, messages):
    with pytest.raises(ExternalStoreError):
        store.store_conversation("u1", messages, {})


def test_retrieve_relevant_memories_ranks_and_annotates(store, clock):
    store.store_conversation("u1", [{"role": "user", "content": "I am allergic to peanuts"}], {})
    clock.advance(seconds=3 * 3600)
    store.store_conversation("u1", [{"role": "user", "content": "my kitchen is very small"}], {})
    store.store_conversation("u2", [{"role": "user", "content": "peanuts are great"}], {})
    clock.advance(seconds=60)

    hits = store.retrieve_relevant_memories("u1", "allergic to peanuts", k=2)
    assert len(hits) == 2
    assert hits[0].content == "I am allergic to peanuts"
    assert hits[0].score > hits[1].score
    assert hits[0].time_since == "3 hours ago"
    assert hits[0].is_recent
    assert all(h.user_id == "u1" for h in hits)


def test_retrieve_for_unknown_user_is_empty(store):
    assert store.retrieve_relevant_memories("nobody", "anything") == []


def test_update_memory_and_history(store, clock):
    memory_id = store.store_conversation("u1", [{"role": "user", "content": "I cook for two"}], {})["id"]
    clock.advance(seconds=10)
    updated = store.update_memory(memory_id, "I cook for four")
    assert updated.content == "I cook for four"
    assert updated.updated_at is not None

    history = store.get_memory_history(memory_id)
    assert [h.action for h in history] == ["add", "update"]
    assert history[1].old_content == "I cook for two"
    assert history[1].new_content == "I cook for four"


def test_update_unknown_memory(store):
    assert store.update_memory("memory_missing", "x") is None


def test_delete_user_memories(store):
    store.store_conversation("u1", [{"role": "user", "content": "one"}], {})
    store.store_conversation("u1", [{"role": "user", "content": "two"}], {})
    store.store_conversation("u2", [{"role": "user", "content": "three"}], {})
    assert store.delete_user_memories("u1") == 2
    assert store.get_all_user_memories("u1") == []
    assert len(store.get_all_user_memories("u2")) == 1


def test_closed_store_raises_external_store_error(tmp_path, provider):
    s = SQLiteMemoryStore(str(tmp_path / "closed.db"), time_provider=provider)
    s.close()
    with pytest.raises(ExternalStoreError):
        s.store_conversation("u1", [{"role": "user", "content": "hi"}], {})
