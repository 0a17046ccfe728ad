"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from penwright.ai.ai_types import AssistantResponse, StopReason, ToolInvocation, TransportCallbacks
from penwright.chat.message_model import ChatMessage
from penwright.documents.models import Document, DocumentStage, OutlineSection


def make_outline(*titles: str, prefix: str = "s") -> tuple[OutlineSection, ...]:
    """Build an outline whose ids are ``s1``, ``s2``, ... in title order."""

    return tuple(
        OutlineSection(id=f"{prefix}{index}", title=title, description=f"About {title.lower()}")
        for index, title in enumerate(titles, start=1)
    )


def make_document(
    content: str = "",
    *,
    stage: DocumentStage = DocumentStage.CONCEPT,
    outline: Sequence[OutlineSection] | None = None,
    path: str | None = None,
) -> Document:
    return Document(
        content=content,
        stage=stage,
        outline=tuple(outline) if outline is not None else None,
        path=path,
    )


def text_response(text: str) -> AssistantResponse:
    return AssistantResponse(text=text, tool_uses=[], stop_reason=StopReason.END_TURN)


def tool_response(*calls: tuple[str, dict[str, Any]], text: str = "") -> AssistantResponse:
    invocations = [
        ToolInvocation(id=f"call_{index}", name=name, input=payload)
        for index, (name, payload) in enumerate(calls)
    ]
    return AssistantResponse(text=text, tool_uses=invocations, stop_reason=StopReason.TOOL_USE)


class ScriptedTransport:
    """``ModelTransport`` stub that replays queued responses.

    Each queued item is an :class:`AssistantResponse`, an exception to raise,
    or a callable producing either. Text is streamed through the callbacks in
    two chunks so streaming behaviour is exercised.
    """

    def __init__(self, responses: Iterable[Any] = (), *, repeat_last: bool = False) -> None:
        self._responses = list(responses)
        self._repeat_last = repeat_last
        self.calls: list[dict[str, Any]] = []

    def queue(self, response: Any) -> None:
        self._responses.append(response)

    async def send_with_tools(
        self,
        messages: Sequence[ChatMessage],
        system_prompt: str,
        tools: Sequence[Any],
        callbacks: TransportCallbacks,
    ) -> AssistantResponse:
        self.calls.append(
            {
                "messages": [message.to_dict() for message in messages],
                "system_prompt": system_prompt,
                "tools": [tool.name for tool in tools],
            }
        )
        if not self._responses:
            raise AssertionError("ScriptedTransport ran out of responses")
        item = self._responses[0] if self._repeat_last and len(self._responses) == 1 else self._responses.pop(0)
        if callable(item):
            item = item()
        if isinstance(item, BaseException):
            callbacks.error(str(item))
            raise item
        if item.text:
            middle = len(item.text) // 2
            callbacks.chunk(item.text[:middle])
            callbacks.chunk(item.text[middle:])
        return item
