"""Chat message and content block data models."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Literal, Optional, Union


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""

    return datetime.now(timezone.utc)


ChatRole = Literal["user", "assistant"]


@dataclass(slots=True, frozen=True)
class TextBlock:
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(slots=True, frozen=True)
class ToolUseBlock:
    """A tool invocation requested by the assistant."""

    id: str
    name: str
    input: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "tool_use", "id": self.id, "name": self.name, "input": dict(self.input)}


@dataclass(slots=True, frozen=True)
class ToolResultBlock:
    """Outcome of a tool invocation, fed back to the model on the next call."""

    tool_use_id: str
    content: str
    is_error: bool = False

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": self.tool_use_id,
            "content": self.content,
        }
        if self.is_error:
            payload["is_error"] = True
        return payload


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock]


@dataclass(slots=True)
class ChatMessage:
    """Represents a row inside the chat history list."""

    role: ChatRole
    content: Union[str, List[ContentBlock]]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=_utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def blocks(self) -> List[ContentBlock]:
        if isinstance(self.content, str):
            return [TextBlock(self.content)] if self.content else []
        return list(self.content)

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""

        if isinstance(self.content, str):
            return self.content
        return "".join(block.text for block in self.content if isinstance(block, TextBlock))

    @property
    def tool_uses(self) -> List[ToolUseBlock]:
        return [block for block in self.blocks if isinstance(block, ToolUseBlock)]

    def is_empty(self) -> bool:
        """True for messages the model API would reject: no text and no tool blocks."""

        if isinstance(self.content, str):
            return not self.content.strip()
        for block in self.content:
            if isinstance(block, TextBlock):
                if block.text.strip():
                    return False
            else:
                return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the message for persistence."""

        content: Any
        if isinstance(self.content, str):
            content = self.content
        else:
            content = [block.to_dict() for block in self.content]
        return {
            "id": self.id,
            "role": self.role,
            "content": content,
            "created_at": self.created_at.isoformat(),
            "metadata": self.metadata,
        }


def tool_result_message(results: Iterable[ToolResultBlock]) -> ChatMessage:
    """Wrap tool results into the synthetic user turn that answers a tool call."""

    return ChatMessage(role="user", content=list(results), metadata={"synthetic": True})


def format_tool_payload(payload: Any) -> str:
    """Serialize a tool payload into the JSON string sent back to the model."""

    return json.dumps(payload, ensure_ascii=False, default=str)


class ChatHistory:
    """Ordered conversation owned by an :class:`~penwright.ai.orchestration.session.AgentSession`."""

    def __init__(self, messages: Optional[Iterable[ChatMessage]] = None) -> None:
        self._messages: List[ChatMessage] = list(messages or ())

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(self._messages)

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self._messages)

    def add_message(self, message: ChatMessage) -> ChatMessage:
        self._messages.append(message)
        return message

    def add_user_text(self, text: str) -> ChatMessage:
        return self.add_message(ChatMessage(role="user", content=text))

    def add_tool_results(self, results: Iterable[ToolResultBlock]) -> ChatMessage:
        return self.add_message(tool_result_message(results))

    def get(self, message_id: str) -> Optional[ChatMessage]:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def update_message(self, message_id: str, content: Union[str, List[ContentBlock]]) -> bool:
        message = self.get(message_id)
        if message is None:
            return False
        message.content = content
        return True

    def append_text(self, message_id: str, chunk: str) -> bool:
        """Append streamed text to a placeholder message whose content is still a string."""

        message = self.get(message_id)
        if message is None or not isinstance(message.content, str):
            return False
        message.content += chunk
        return True

    def remove_message(self, message_id: str) -> bool:
        for index, message in enumerate(self._messages):
            if message.id == message_id:
                del self._messages[index]
                return True
        return False

    def clear(self) -> None:
        self._messages.clear()

    def to_api_messages(self, exclude_id: Optional[str] = None) -> List[ChatMessage]:
        """Messages suitable for the model: skip *exclude_id* and anything empty."""

        return [
            message
            for message in self._messages
            if message.id != exclude_id and not message.is_empty()
        ]


__all__ = [
    "ChatHistory",
    "ChatMessage",
    "ChatRole",
    "ContentBlock",
    "TextBlock",
    "ToolResultBlock",
    "ToolUseBlock",
    "format_tool_payload",
    "tool_result_message",
]
