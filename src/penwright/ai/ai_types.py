"""Shared typing contracts between the agent loop, the tools, and model transports."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Protocol, Sequence, runtime_checkable

from ..chat.message_model import ChatMessage, ToolResultBlock, ToolUseBlock

if TYPE_CHECKING:  # pragma: no cover
    from .tools.definitions import ToolSpec


class StopReason(str, Enum):
    """Why the model stopped producing output for a call."""

    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"
    UNKNOWN = "unknown"


@dataclass(slots=True, frozen=True)
class ToolInvocation:
    """A tool call requested by the model: ``{id, name, input}``."""

    id: str
    name: str
    input: Mapping[str, Any] = field(default_factory=dict)

    def to_block(self) -> ToolUseBlock:
        return ToolUseBlock(id=self.id, name=self.name, input=dict(self.input))


@dataclass(slots=True, frozen=True)
class ToolResult:
    """Outcome of a tool call: ``{tool_use_id, content, is_error}``.

    ``content`` is always a JSON string.
    """

    tool_use_id: str
    content: str
    is_error: bool = False

    def to_block(self) -> ToolResultBlock:
        return ToolResultBlock(tool_use_id=self.tool_use_id, content=self.content, is_error=self.is_error)


@dataclass(slots=True)
class AssistantResponse:
    """Final result of one model call."""

    text: str = ""
    tool_uses: list[ToolInvocation] = field(default_factory=list)
    stop_reason: StopReason = StopReason.END_TURN


@dataclass(slots=True)
class TransportCallbacks:
    """Hooks a transport invokes while a call is in flight."""

    on_chunk: Callable[[str], None] | None = None
    on_error: Callable[[str], None] | None = None

    def chunk(self, text: str) -> None:
        if self.on_chunk is not None and text:
            self.on_chunk(text)

    def error(self, message: str) -> None:
        if self.on_error is not None:
            self.on_error(message)


@runtime_checkable
class ModelTransport(Protocol):
    """Abstract model capability used by the agent loop.

    Implementations stream text through ``callbacks.on_chunk`` and return the
    assembled response. Failures are raised; the loop classifies them.
    """

    def send_with_tools(
        self,
        messages: Sequence[ChatMessage],
        system_prompt: str,
        tools: Sequence["ToolSpec"],
        callbacks: TransportCallbacks,
    ) -> Awaitable[AssistantResponse]:
        ...


__all__ = [
    "AssistantResponse",
    "ModelTransport",
    "StopReason",
    "ToolInvocation",
    "ToolResult",
    "TransportCallbacks",
]
