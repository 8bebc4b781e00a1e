"""Tests for the append-only conversation log and the session registry."""

import pytest
from pydantic import ValidationError

from gearguide.conversation_store import ConversationStore, SessionStore
from gearguide.errors import ConversationError
from gearguide.models import Message, Role, Source


def _store() -> ConversationStore:
    return ConversationStore(Message.system("be helpful"))


class TestMessage:
    def test_assistant_requires_source(self):
        with pytest.raises(ValidationError):
            Message(role=Role.ASSISTANT, content="hi")

    def test_user_cannot_carry_source(self):
        with pytest.raises(ValidationError):
            Message(role=Role.USER, content="hi", source=Source.LOCAL)

    def test_messages_are_frozen(self):
        message = Message.user("hello")
        with pytest.raises(ValidationError):
            message.content = "changed"

    def test_to_llm_drops_source(self):
        assert Message.fact("in stock").to_llm() == {"role": "assistant", "content": "in stock"}

    def test_fact_and_reply_tags(self):
        assert Message.fact("x").is_fact
        assert not Message.reply("x").is_fact
        assert Message.reply("x").source is Source.LLM


class TestConversationStore:
    def test_starts_with_single_system_message(self):
        store = _store()
        assert len(store) == 1
        assert store.snapshot()[0].role is Role.SYSTEM
        assert store.system_message.content == "be helpful"

    def test_seed_must_be_system(self):
        with pytest.raises(ConversationError):
            ConversationStore(Message.user("hi"))

    def test_second_system_message_rejected(self):
        store = _store()
        with pytest.raises(ConversationError):
            store.append(Message.system("override"))
        assert len(store) == 1

    def test_append_preserves_order(self):
        store = _store()
        messages = [Message.user("a"), Message.fact("b"), Message.reply("c")]
        for message in messages:
            store.append(message)
        assert list(store.snapshot()[1:]) == messages
        assert list(store) == list(store.snapshot())

    def test_snapshot_is_detached_from_store(self):
        store = _store()
        before = store.snapshot()
        store.append(Message.user("later"))
        assert len(before) == 1
        assert len(store.snapshot()) == 2

    def test_facts_returns_only_local_messages(self):
        store = _store()
        store.append(Message.user("q"))
        store.append(Message.fact("fact"))
        store.append(Message.reply("reply"))
        assert [message.content for message in store.facts()] == ["fact"]

    def test_no_removal_api(self):
        store = _store()
        assert not hasattr(store, "remove")
        assert not hasattr(store, "pop")


class TestSessionStore:
    def test_get_or_create_reuses_loop(self):
        created = []

        def factory(session_id):
            created.append(session_id)
            return object()

        store = SessionStore(factory)
        first = store.get_or_create("s1")
        assert store.get_or_create("s1") is first
        assert created == ["s1"]
        assert store.get("missing") is None

    def test_touch_sets_title_from_first_message(self):
        store = SessionStore(lambda session_id: object())
        store.get_or_create("s1")
        store.touch("s1", "Where is my order #AB123?\nthanks")
        store.touch("s1", "second message")
        [summary] = store.list_sessions()
        assert summary.title == "Where is my order #AB123?"

    def test_title_truncated(self):
        store = SessionStore(lambda session_id: object())
        store.get_or_create("s1")
        store.touch("s1", "x" * 100)
        assert len(store.list_sessions()[0].title) == 48

    def test_pruning_drops_least_recent(self):
        store = SessionStore(lambda session_id: object(), max_sessions=2)
        store.get_or_create("old")
        store.get_or_create("mid")
        store.touch("old", "still here")
        store.get_or_create("new")
        remaining = {summary.session_id for summary in store.list_sessions()}
        assert remaining == {"old", "new"}
        assert store.get("mid") is None

    def test_list_sessions_most_recent_first(self):
        store = SessionStore(lambda session_id: object())
        store.get_or_create("a")
        store.get_or_create("b")
        store.touch("a", "hello")
        assert [summary.session_id for summary in store.list_sessions()] == ["a", "b"]
