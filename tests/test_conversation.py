"""Tests for the conversation store and message models."""

import dataclasses

import pytest

from sandboxed_agent.conversation import ConversationStore, Message, Role, ToolCall


class TestMessages:
    """Tests for Message and ToolCall."""

    def test_messages_are_immutable(self):
        """Test that a message cannot be changed after creation."""
        message = Message.user("Hello")
        with pytest.raises(dataclasses.FrozenInstanceError):
            message.content = "changed"

    def test_tool_message_to_api(self):
        """Test tool message conversion."""
        message = Message.tool("call_1", '{"result":4}')
        assert message.to_api() == {"role": "tool", "content": '{"result":4}', "tool_call_id": "call_1"}

    def test_assistant_with_tool_calls_to_api(self):
        """Test assistant message carrying tool calls."""
        call = ToolCall(id="call_1", name="evaluate", arguments='{"code": "2+2"}')
        message = Message.assistant("", tool_calls=[call])
        data = message.to_api()
        assert data["role"] == "assistant"
        assert data["content"] is None
        assert data["tool_calls"] == [{
            "id": "call_1",
            "type": "function",
            "function": {"name": "evaluate", "arguments": '{"code": "2+2"}'},
        }]

    def test_plain_assistant_to_api(self):
        """Test assistant message without tool calls."""
        assert Message.assistant("4").to_api() == {"role": "assistant", "content": "4"}

    def test_tool_call_from_api(self):
        """Test parsing a chat-completions tool call."""
        call = ToolCall.from_api({"id": "abc", "function": {"name": "search", "arguments": '{"query": "x"}'}})
        assert call == ToolCall(id="abc", name="search", arguments='{"query": "x"}')

    def test_tool_call_from_api_generates_missing_id(self):
        """Test that a missing id is generated."""
        call = ToolCall.from_api({"function": {"name": "search"}})
        assert call.id.startswith("call_")
        assert call.arguments == "{}"

    def test_tool_call_from_api_encodes_decoded_arguments(self):
        """Test arguments sent as an object are re-encoded as text."""
        call = ToolCall.from_api({"id": "a", "function": {"name": "search", "arguments": {"query": "x"}}})
        assert call.arguments == '{"query": "x"}'


class TestConversationStore:
    """Tests for ConversationStore."""

    def test_seeded_with_system_message(self):
        """Test the store starts with exactly one system message."""
        store = ConversationStore("be helpful")
        snapshot = store.snapshot()
        assert len(snapshot) == 1
        assert snapshot[0].role is Role.SYSTEM
        assert snapshot[0].content == "be helpful"

    def test_append_preserves_order(self):
        """Test messages are kept in append order."""
        store = ConversationStore("sys")
        store.append(Message.user("one"))
        store.append(Message.assistant("two"))
        store.append(Message.user("three"))
        assert [m.content for m in store.snapshot()] == ["sys", "one", "two", "three"]
        assert store.last().content == "three"
        assert len(store) == 4

    def test_snapshot_is_detached(self):
        """Test that a snapshot does not change when the store grows."""
        store = ConversationStore("sys")
        snapshot = store.snapshot()
        store.append(Message.user("later"))
        assert len(snapshot) == 1
        assert len(store.snapshot()) == 2

    def test_as_payload(self):
        """Test payload conversion."""
        store = ConversationStore("sys")
        store.append(Message.user("hi"))
        assert store.as_payload() == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "hi"},
        ]

    def test_append_rejects_non_messages(self):
        """Test that only Message objects can be appended."""
        store = ConversationStore("sys")
        with pytest.raises(TypeError):
            store.append({"role": "user", "content": "hi"})

    def test_no_edit_or_delete_api(self):
        """Test the store exposes no mutation beyond append."""
        store = ConversationStore("sys")
        for name in ("remove", "pop", "clear", "insert", "__setitem__", "__delitem__"):
            assert not hasattr(store, name)
