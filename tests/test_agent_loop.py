"""Tests for the bounded agent loop."""

from __future__ import annotations

import pytest

from penwright.ai.ai_types import StopReason
from penwright.ai.orchestration.loop import AgentCallbacks, AgentLoop, RunStatus
from penwright.ai.orchestration.session import AgentSession
from penwright.chat.message_model import TextBlock, ToolUseBlock
from penwright.documents.models import DocumentStage
from penwright.documents.store import DocumentStore

from tests.helpers import ScriptedTransport, make_document, make_outline, text_response, tool_response


def _session(transport: ScriptedTransport, store: DocumentStore, *, max_iterations: int = 10) -> AgentSession:
    session = AgentSession(transport, store=store, loop=AgentLoop(max_iterations=max_iterations))
    session.snapshots.snapshot_now(store)
    return session


@pytest.mark.asyncio
async def test_plain_reply_completes_in_one_iteration(store: DocumentStore) -> None:
    transport = ScriptedTransport([text_response("Hello there")])
    session = _session(transport, store)
    chunks: list[str] = []

    result = await session.send_message("Hi", AgentCallbacks(on_chunk=chunks.append))

    assert result.status is RunStatus.COMPLETED
    assert result.ok is True
    assert result.iterations == 1
    assert result.response_text == "Hello there"
    assert chunks == ["Hello", " there"]
    assert [message.role for message in session.history] == ["user", "assistant"]
    assert session.history.messages[-1].content == "Hello there"


@pytest.mark.asyncio
async def test_tool_calls_are_executed_and_fed_back(store: DocumentStore) -> None:
    transport = ScriptedTransport(
        [
            tool_response(("update_stage", {"stage": "outline"}), text="Moving on."),
            text_response("Let's outline."),
        ]
    )
    session = _session(transport, store)
    seen_results = []

    result = await session.send_message("Ready", AgentCallbacks(on_tool_results=seen_results.append))

    assert result.status is RunStatus.COMPLETED
    assert result.iterations == 2
    assert len(result.tool_results) == 1
    assert result.tool_results[0].is_error is False
    assert len(seen_results) == 1
    assert store.stage is DocumentStage.OUTLINE

    assistant = session.history.messages[1]
    assert assistant.content == [
        TextBlock("Moving on."),
        ToolUseBlock(id="call_0", name="update_stage", input={"stage": "outline"}),
    ]

    second_call = transport.calls[1]["messages"]
    assert [message["role"] for message in second_call] == ["user", "assistant", "user"]
    assert second_call[-1]["content"][0]["type"] == "tool_result"
    assert second_call[-1]["content"][0]["tool_use_id"] == "call_0"


@pytest.mark.asyncio
async def test_end_turn_stop_reason_ends_loop_even_with_tools(store: DocumentStore) -> None:
    response = tool_response(("read_document", {}))
    response.stop_reason = StopReason.END_TURN
    transport = ScriptedTransport([response])
    session = _session(transport, store)

    result = await session.send_message("Read it")

    assert result.status is RunStatus.COMPLETED
    assert result.iterations == 1
    assert result.tool_results == []


@pytest.mark.asyncio
async def test_loop_stops_at_iteration_cap(store: DocumentStore) -> None:
    transport = ScriptedTransport([tool_response(("read_document", {}))], repeat_last=True)
    session = _session(transport, store, max_iterations=3)

    result = await session.send_message("Loop forever")

    assert result.status is RunStatus.MAX_ITERATIONS
    assert result.ok is True
    assert result.iterations == 3
    assert len(transport.calls) == 3
    assert len(result.tool_results) == 3


def test_iteration_cap_must_be_positive() -> None:
    with pytest.raises(ValueError):
        AgentLoop(max_iterations=0)


@pytest.mark.asyncio
async def test_transport_error_removes_empty_placeholder(store: DocumentStore) -> None:
    transport = ScriptedTransport([RuntimeError("connection reset")])
    session = _session(transport, store)
    errors: list[tuple[str, bool]] = []

    result = await session.send_message("Hi", AgentCallbacks(on_error=lambda msg, cred: errors.append((msg, cred))))

    assert result.status is RunStatus.ERROR
    assert result.ok is False
    assert result.error == "connection reset"
    assert result.credential_error is False
    assert errors == [("connection reset", False)]
    assert [message.role for message in session.history] == ["user"]


class _ReportingTransport(ScriptedTransport):
    """Reports an error through the callbacks but still returns a response."""

    def __init__(self, message: str, *responses) -> None:
        super().__init__(responses)
        self._message = message

    async def send_with_tools(self, messages, system_prompt, tools, callbacks):
        callbacks.error(self._message)
        return await super().send_with_tools(messages, system_prompt, tools, callbacks)


@pytest.mark.asyncio
async def test_reported_transport_error_reaches_callbacks_without_raising(store: DocumentStore) -> None:
    transport = _ReportingTransport("invalid api key for fallback model", text_response("Recovered."))
    session = _session(transport, store)
    errors: list[tuple[str, bool]] = []

    result = await session.send_message("Hi", AgentCallbacks(on_error=lambda msg, cred: errors.append((msg, cred))))

    assert result.status is RunStatus.COMPLETED
    assert result.response_text == "Recovered."
    assert errors == [("invalid api key for fallback model", True)]


@pytest.mark.asyncio
async def test_credential_errors_are_flagged(store: DocumentStore) -> None:
    transport = ScriptedTransport([Exception("Error code: 401 Unauthorized")])
    session = _session(transport, store)

    result = await session.send_message("Hi")

    assert result.status is RunStatus.ERROR
    assert result.credential_error is True


@pytest.mark.asyncio
async def test_error_after_tool_iteration_keeps_earlier_messages(store: DocumentStore) -> None:
    transport = ScriptedTransport([tool_response(("read_document", {})), RuntimeError("boom")])
    session = _session(transport, store)

    result = await session.send_message("Hi")

    assert result.status is RunStatus.ERROR
    assert result.iterations == 2
    assert [message.role for message in session.history] == ["user", "assistant", "user"]


@pytest.mark.asyncio
async def test_snapshot_is_taken_even_when_the_turn_fails(store: DocumentStore) -> None:
    transport = ScriptedTransport([RuntimeError("boom")])
    session = _session(transport, store)
    store.update_content("Edited before the turn.")

    await session.send_message("Hi")

    assert session.snapshots.changes_since(store) is None
    assert session.snapshots.baseline.content == "Edited before the turn."


@pytest.mark.asyncio
async def test_user_edits_appear_in_the_system_prompt_once(store: DocumentStore) -> None:
    transport = ScriptedTransport([text_response("Noted."), text_response("Still here.")])
    session = _session(transport, store)
    store.update_content(store.content + "\nA brand new closing line.")
    store.update_outline(make_outline("Intro", "Body"))

    await session.send_message("What changed?")
    await session.send_message("Anything else?")

    first_prompt = transport.calls[0]["system_prompt"]
    assert "## User Changes Since Last Response" in first_prompt
    assert "+ A brand new closing line." in first_prompt
    assert "### Outline Changes" in first_prompt
    assert "## Current Outline (Locked)" in first_prompt
    assert "## User Changes Since Last Response" not in transport.calls[1]["system_prompt"]


@pytest.mark.asyncio
async def test_outline_edit_against_draft_adds_conflict_block() -> None:
    draft = "## Intro\nThe opening paragraph.\n## Body\nThe argument."
    outline = make_outline("Intro", "Body")
    store = DocumentStore(make_document(draft, stage=DocumentStage.DRAFT, outline=outline))
    transport = ScriptedTransport([text_response("I see the outline changed.")])
    session = _session(transport, store)
    store.update_outline([outline[1]])

    await session.send_message("I cut the intro")

    prompt = transport.calls[0]["system_prompt"]
    assert "## Outline-Draft Conflicts Detected" in prompt
    assert "Do not assume how to resolve these conflicts" in prompt


@pytest.mark.asyncio
async def test_turn_emits_telemetry(store: DocumentStore, telemetry_sink) -> None:
    transport = ScriptedTransport([tool_response(("read_document", {})), text_response("Done")])
    session = _session(transport, store)

    await session.send_message("Go")

    names = telemetry_sink.names()
    assert names[0] == "agent_turn_started"
    assert names[-1] == "agent_turn_finished"
    finished = telemetry_sink.tail(1)[0].payload
    assert finished["status"] == "completed"
    assert finished["iterations"] == 2
    assert finished["tool_calls"] == 1
