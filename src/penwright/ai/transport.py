"""``ModelTransport`` implementation for OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Sequence

from ..chat.message_model import ChatMessage, TextBlock, ToolResultBlock, ToolUseBlock
from .ai_types import AssistantResponse, StopReason, ToolInvocation, TransportCallbacks
from .client import AIClient
from .tools.definitions import ToolSpec

LOGGER = logging.getLogger(__name__)

__all__ = ["OpenAITransport", "map_finish_reason", "to_openai_messages"]

_FINISH_REASONS = {
    "stop": StopReason.END_TURN,
    "tool_calls": StopReason.TOOL_USE,
    "function_call": StopReason.TOOL_USE,
    "length": StopReason.MAX_TOKENS,
    "content_filter": StopReason.STOP_SEQUENCE,
}


def map_finish_reason(finish_reason: str | None, *, has_tool_calls: bool) -> StopReason:
    if finish_reason is None:
        return StopReason.TOOL_USE if has_tool_calls else StopReason.END_TURN
    return _FINISH_REASONS.get(finish_reason, StopReason.UNKNOWN)


def to_openai_messages(system_prompt: str, messages: Sequence[ChatMessage]) -> List[Dict[str, Any]]:
    """Convert block-structured chat history into OpenAI chat messages.

    Assistant tool requests become ``tool_calls`` entries and tool results
    become ``role="tool"`` messages that follow them.
    """

    converted: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for message in messages:
        if isinstance(message.content, str):
            converted.append({"role": message.role, "content": message.content})
            continue
        if message.role == "assistant":
            converted.append(_assistant_message(message))
            continue

        texts: List[str] = []
        for block in message.content:
            if isinstance(block, ToolResultBlock):
                converted.append({"role": "tool", "tool_call_id": block.tool_use_id, "content": block.content})
            elif isinstance(block, TextBlock) and block.text:
                texts.append(block.text)
        if texts:
            converted.append({"role": "user", "content": "\n\n".join(texts)})
    return converted


def _assistant_message(message: ChatMessage) -> Dict[str, Any]:
    text = message.text
    tool_uses = [block for block in message.blocks if isinstance(block, ToolUseBlock)]
    payload: Dict[str, Any] = {"role": "assistant", "content": text or None}
    if tool_uses:
        payload["tool_calls"] = [
            {
                "id": block.id,
                "type": "function",
                "function": {"name": block.name, "arguments": json.dumps(block.input, ensure_ascii=False)},
            }
            for block in tool_uses
        ]
    return payload


class OpenAITransport:
    """Streams a chat completion through :class:`AIClient` and assembles the response."""

    def __init__(self, client: AIClient) -> None:
        self._client = client

    @property
    def client(self) -> AIClient:
        return self._client

    async def send_with_tools(
        self,
        messages: Sequence[ChatMessage],
        system_prompt: str,
        tools: Sequence[ToolSpec],
        callbacks: TransportCallbacks,
    ) -> AssistantResponse:
        text_parts: List[str] = []
        calls: Dict[int, Dict[str, Any]] = {}
        call_ids: Dict[int, str] = {}
        finish_reason: str | None = None

        try:
            async for event in self._client.stream_chat(
                to_openai_messages(system_prompt, messages),
                tools=[spec.to_openai_tool() for spec in tools] or None,
            ):
                if event.type == "content.delta" and event.content:
                    text_parts.append(event.content)
                    callbacks.chunk(event.content)
                elif event.type == "tool_calls.function.arguments.done":
                    index = event.tool_index if event.tool_index is not None else len(calls)
                    calls[index] = {
                        "name": event.tool_name or "",
                        "arguments": event.tool_arguments,
                        "parsed": event.parsed,
                    }
                elif event.type == "chunk":
                    call_ids.update(event.tool_call_ids)
                    if event.finish_reason:
                        finish_reason = event.finish_reason
        except Exception as exc:
            callbacks.error(str(exc))
            raise

        tool_uses = [
            ToolInvocation(
                id=call_ids.get(index) or f"{call['name']}:{index}",
                name=call["name"],
                input=_parse_arguments(call["parsed"], call["arguments"]),
            )
            for index, call in sorted(calls.items())
        ]
        stop_reason = map_finish_reason(finish_reason, has_tool_calls=bool(tool_uses))
        LOGGER.debug(
            "Model response complete (chars=%s, tools=%s, finish=%s)",
            sum(len(part) for part in text_parts),
            len(tool_uses),
            finish_reason,
        )
        return AssistantResponse(text="".join(text_parts), tool_uses=tool_uses, stop_reason=stop_reason)


def _parse_arguments(parsed: Any, raw: str | None) -> Mapping[str, Any]:
    if isinstance(parsed, Mapping):
        return dict(parsed)
    if not raw or not raw.strip():
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        LOGGER.warning("Tool call arguments are not valid JSON: %.200s", raw)
        return {"arguments": raw}
    return decoded if isinstance(decoded, dict) else {"arguments": decoded}
