"""Tests for the OpenAI-compatible AI client and transport."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any, Iterable, cast

import httpx
import pytest

from openai import AsyncOpenAI

from penwright.ai.ai_types import StopReason, TransportCallbacks
from penwright.ai.client import AIClient, AIStreamEvent, ClientSettings
from penwright.ai.tools.definitions import TOOL_CATALOG
from penwright.ai.transport import OpenAITransport, map_finish_reason, to_openai_messages
from penwright.chat.message_model import ChatMessage, TextBlock, ToolResultBlock, ToolUseBlock


@dataclass
class _FakeEvent:
    """Simple structure emulating ChatCompletionStreamEvent attributes."""

    type: str
    delta: str | None = None
    content: str | None = None
    name: str | None = None
    index: int | None = None
    arguments: str | None = None
    parsed_arguments: Any | None = None
    chunk: Any | None = None


def _chunk_event(*, finish_reason: str | None = None, tool_ids: Iterable[tuple[int, str]] = ()) -> _FakeEvent:
    calls = [SimpleNamespace(index=index, id=call_id) for index, call_id in tool_ids]
    choice = SimpleNamespace(delta=SimpleNamespace(tool_calls=calls), finish_reason=finish_reason)
    return _FakeEvent(type="chunk", chunk=SimpleNamespace(choices=[choice]))


class _FakeStream:
    def __init__(self, events: Iterable[Any]):
        self._iterator = iter(list(events))

    def __aiter__(self) -> "_FakeStream":
        return self

    async def __anext__(self) -> _FakeEvent:
        try:
            item = next(self._iterator)
        except StopIteration as exc:  # pragma: no cover - exhaust iterator
            raise StopAsyncIteration from exc
        if isinstance(item, BaseException):
            raise item
        return item


class _FakeStreamContext:
    def __init__(self, events: Iterable[Any]):
        self._events = list(events)

    async def __aenter__(self) -> _FakeStream:
        return _FakeStream(self._events)

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


@dataclass
class _FakeCompletions:
    """Each call to ``stream`` consumes the next scripted attempt."""

    attempts: list[list[Any]]
    calls: list[dict[str, Any]] = field(default_factory=list)

    def stream(self, **kwargs: Any) -> _FakeStreamContext:
        self.calls.append(kwargs)
        events = self.attempts.pop(0) if len(self.attempts) > 1 else self.attempts[0]
        return _FakeStreamContext(events)


class _FakeClient:
    def __init__(self, *attempts: list[Any]):
        self.chat = SimpleNamespace(completions=_FakeCompletions(list(attempts)))
        self.closed = False

    async def close(self) -> None:
        self.closed = True


def _settings(**overrides: Any) -> ClientSettings:
    values: dict[str, Any] = {
        "base_url": "https://example.invalid/v1",
        "api_key": "sk-test",
        "model": "test-model",
        "retry_min_seconds": 0,
        "retry_max_seconds": 0,
    }
    values.update(overrides)
    return ClientSettings(**values)


def _client(fake: _FakeClient, **overrides: Any) -> AIClient:
    return AIClient(_settings(**overrides), client=cast(AsyncOpenAI, fake))


async def _collect(client: AIClient, **kwargs: Any) -> list[AIStreamEvent]:
    return [event async for event in client.stream_chat([{"role": "user", "content": "hi"}], **kwargs)]


@pytest.mark.asyncio
async def test_stream_chat_normalizes_events() -> None:
    fake = _FakeClient(
        [
            _FakeEvent(type="content.delta", delta="Hel"),
            _FakeEvent(type="content.delta", delta=""),
            _FakeEvent(type="content.delta", delta="lo"),
            _FakeEvent(type="content.done", content="Hello"),
            _FakeEvent(type="refusal.delta"),
            _chunk_event(finish_reason="stop"),
        ]
    )

    events = await _collect(_client(fake), metadata={"run": "1"})

    assert [event.type for event in events] == ["content.delta", "content.delta", "content.done", "chunk"]
    assert events[-1].finish_reason == "stop"
    payload = fake.chat.completions.calls[0]
    assert payload["model"] == "test-model"
    assert payload["temperature"] == 0.7
    assert payload["metadata"] == {"run": "1"}
    assert "tools" not in payload


@pytest.mark.asyncio
async def test_stream_chat_requires_messages() -> None:
    client = _client(_FakeClient([]))

    with pytest.raises(ValueError):
        async for _event in client.stream_chat([]):
            pass


@pytest.mark.asyncio
async def test_transient_error_before_first_event_is_retried() -> None:
    fake = _FakeClient(
        [httpx.ConnectTimeout("timed out")],
        [_FakeEvent(type="content.delta", delta="ok")],
    )

    events = await _collect(_client(fake, max_retries=3))

    assert [event.content for event in events] == ["ok"]
    assert len(fake.chat.completions.calls) == 2


@pytest.mark.asyncio
async def test_error_after_first_event_is_not_retried() -> None:
    fake = _FakeClient(
        [_FakeEvent(type="content.delta", delta="partial"), httpx.ReadTimeout("stalled")],
        [_FakeEvent(type="content.delta", delta="replayed")],
    )

    with pytest.raises(httpx.ReadTimeout):
        await _collect(_client(fake, max_retries=3))

    assert len(fake.chat.completions.calls) == 1


@pytest.mark.asyncio
async def test_non_transient_error_is_not_retried() -> None:
    fake = _FakeClient([RuntimeError("bad request")], [_FakeEvent(type="content.delta", delta="never")])

    with pytest.raises(RuntimeError):
        await _collect(_client(fake, max_retries=3))

    assert len(fake.chat.completions.calls) == 1


@pytest.mark.asyncio
async def test_aclose_closes_underlying_client() -> None:
    fake = _FakeClient([])

    await _client(fake).aclose()

    assert fake.closed is True


@pytest.mark.parametrize(
    ("finish_reason", "has_tools", "expected"),
    [
        ("stop", False, StopReason.END_TURN),
        ("tool_calls", True, StopReason.TOOL_USE),
        ("length", False, StopReason.MAX_TOKENS),
        ("something_new", False, StopReason.UNKNOWN),
        (None, True, StopReason.TOOL_USE),
        (None, False, StopReason.END_TURN),
    ],
)
def test_map_finish_reason(finish_reason, has_tools: bool, expected: StopReason) -> None:
    assert map_finish_reason(finish_reason, has_tool_calls=has_tools) is expected


def test_to_openai_messages_converts_tool_blocks() -> None:
    history = [
        ChatMessage(role="user", content="Read it"),
        ChatMessage(
            role="assistant",
            content=[TextBlock("Reading."), ToolUseBlock(id="call_1", name="read_document", input={})],
        ),
        ChatMessage(role="user", content=[ToolResultBlock(tool_use_id="call_1", content='{"content": ""}')]),
    ]

    converted = to_openai_messages("system text", history)

    assert converted[0] == {"role": "system", "content": "system text"}
    assert converted[1] == {"role": "user", "content": "Read it"}
    assert converted[2]["content"] == "Reading."
    assert converted[2]["tool_calls"][0]["function"] == {"name": "read_document", "arguments": "{}"}
    assert converted[3] == {"role": "tool", "tool_call_id": "call_1", "content": '{"content": ""}'}


@pytest.mark.asyncio
async def test_transport_assembles_text_and_tool_calls() -> None:
    fake = _FakeClient(
        [
            _FakeEvent(type="content.delta", delta="Let me look."),
            _chunk_event(tool_ids=[(0, "call_abc")]),
            _FakeEvent(
                type="tool_calls.function.arguments.done",
                name="update_stage",
                index=0,
                arguments='{"stage": "draft"}',
                parsed_arguments={"stage": "draft"},
            ),
            _FakeEvent(
                type="tool_calls.function.arguments.done",
                name="read_document",
                index=1,
                arguments="{not json",
            ),
            _chunk_event(finish_reason="tool_calls"),
        ]
    )
    transport = OpenAITransport(_client(fake))
    chunks: list[str] = []

    response = await transport.send_with_tools(
        [ChatMessage(role="user", content="Go")],
        "system",
        TOOL_CATALOG,
        TransportCallbacks(on_chunk=chunks.append),
    )

    assert response.text == "Let me look."
    assert chunks == ["Let me look."]
    assert response.stop_reason is StopReason.TOOL_USE
    assert [(call.id, call.name) for call in response.tool_uses] == [
        ("call_abc", "update_stage"),
        ("read_document:1", "read_document"),
    ]
    assert response.tool_uses[0].input == {"stage": "draft"}
    assert response.tool_uses[1].input == {"arguments": "{not json"}
    assert len(fake.chat.completions.calls[0]["tools"]) == len(TOOL_CATALOG)


@pytest.mark.asyncio
async def test_transport_reports_errors_and_reraises() -> None:
    fake = _FakeClient([RuntimeError("401 Unauthorized")])
    errors: list[str] = []

    with pytest.raises(RuntimeError):
        await OpenAITransport(_client(fake)).send_with_tools(
            [ChatMessage(role="user", content="Go")],
            "system",
            (),
            TransportCallbacks(on_error=errors.append),
        )

    assert errors == ["401 Unauthorized"]
