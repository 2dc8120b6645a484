"""
Conversation store - ordered, append-only message history

The store is a pure log: it never reorders, edits or deletes entries. Checking
that tool results pair up with the calls that produced them is left to the
orchestrator, which owns the store.
"""

import json
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator


class Role(str, Enum):
    """Message author"""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCall:
    """A model-issued request to run a named tool"""
    id: str
    name: str
    arguments: str = "{}"  # raw text, decoded by the dispatcher

    @classmethod
    def from_api(cls, data: dict) -> "ToolCall":
        """Build from a chat-completions `tool_calls` entry"""
        function = data.get("function") or {}
        arguments = function.get("arguments")
        if arguments is None:
            arguments = "{}"
        elif not isinstance(arguments, str):
            # Some OpenAI-compatible servers send the object already decoded
            arguments = json.dumps(arguments)
        return cls(
            id=data.get("id") or f"call_{uuid.uuid4().hex[:12]}",
            name=function.get("name", ""),
            arguments=arguments,
        )

    def to_api(self) -> dict:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(frozen=True)
class Message:
    """A single conversation entry"""
    role: Role
    content: str = ""
    tool_call_id: str | None = None
    tool_calls: tuple[ToolCall, ...] = field(default_factory=tuple)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(Role.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: str = "", tool_calls: list[ToolCall] | None = None) -> "Message":
        return cls(Role.ASSISTANT, content, tool_calls=tuple(tool_calls or ()))

    @classmethod
    def tool(cls, tool_call_id: str, content: str) -> "Message":
        return cls(Role.TOOL, content, tool_call_id=tool_call_id)

    def to_api(self) -> dict[str, Any]:
        """Convert to the chat-completions message format"""
        data: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            data["content"] = self.content or None
            data["tool_calls"] = [call.to_api() for call in self.tool_calls]
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        return data


class ConversationStore:
    """
    Append-only message log for one session

    Usage:
        store = ConversationStore("You are a helpful agent.")
        store.append(Message.user("What is 2+2?"))
        payload = store.as_payload()
    """

    def __init__(self, system_prompt: str):
        self._messages: list[Message] = [Message.system(system_prompt)]

    def append(self, message: Message) -> None:
        if not isinstance(message, Message):
            raise TypeError(f"Expected Message, got {type(message).__name__}")
        self._messages.append(message)

    def snapshot(self) -> tuple[Message, ...]:
        """Full ordered history"""
        return tuple(self._messages)

    def as_payload(self) -> list[dict[str, Any]]:
        """History ready to send to the model endpoint"""
        return [message.to_api() for message in self._messages]

    def last(self) -> Message:
        return self._messages[-1]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.snapshot())
