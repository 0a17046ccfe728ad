"""Tests for the agent session: document lifecycle and turn sequencing."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from penwright.ai.orchestration.loop import RunStatus
from penwright.ai.orchestration.session import AgentSession, SessionBusyError
from penwright.documents.persistence import DocumentRepository, sidecar_path_for
from penwright.services.settings import Settings

from tests.helpers import ScriptedTransport, make_document, text_response, tool_response


def _settings() -> Settings:
    return Settings(autosave_delay=0.01, max_iterations=4)


def test_default_loop_uses_settings() -> None:
    session = AgentSession(ScriptedTransport(), settings=_settings())

    assert session.loop.max_iterations == 4
    assert session.running is False
    assert session.saver is None


def test_load_document_takes_initial_snapshot() -> None:
    session = AgentSession(ScriptedTransport())

    session.load_document(make_document("Hello"))

    assert session.snapshots.baseline.content == "Hello"
    assert session.snapshots.changes_since(session.store) is None


def test_load_document_restores_valid_last_seen() -> None:
    session = AgentSession(ScriptedTransport())

    session.load_document(make_document("Hello world"), last_seen={"content": "Hello", "outline": None, "stage": "concept"})

    changes = session.snapshots.changes_since(session.store)
    assert changes is not None
    assert changes.previous_content == "Hello"


def test_load_document_ignores_malformed_last_seen() -> None:
    session = AgentSession(ScriptedTransport())

    session.load_document(make_document("Hello"), last_seen={"content": 12})

    assert session.snapshots.baseline.content == "Hello"


def test_open_path_with_create(tmp_path: Path) -> None:
    session = AgentSession(ScriptedTransport(), settings=_settings())

    document = session.open_path(tmp_path / "new.md", create=True)

    assert document.content == ""
    assert (tmp_path / "new.md").exists()
    assert sidecar_path_for(tmp_path / "new.md").exists()
    assert session.saver is not None


def test_close_document_resets_state(tmp_path: Path) -> None:
    session = AgentSession(ScriptedTransport(), settings=_settings())
    session.open_path(tmp_path / "new.md", create=True)

    session.close_document()

    assert session.store.is_loaded is False
    assert session.saver is None
    assert session.snapshots.baseline.content == ""


@pytest.mark.asyncio
async def test_edits_made_between_sessions_are_reported(tmp_path: Path) -> None:
    target = tmp_path / "essay.md"
    repository = DocumentRepository()
    stored = repository.create(target)
    stored.document.content = "Old text."
    repository.save(stored.document, last_seen={"content": "Old text.", "outline": None, "stage": "concept"})
    target.write_text("Old text.\nAdded while the app was closed.", encoding="utf-8")

    transport = ScriptedTransport([text_response("I see the new line.")])
    session = AgentSession(transport, repository=repository, settings=_settings())
    session.open_path(target)
    await session.send_message("Take a look")
    await session.aclose()

    prompt = transport.calls[0]["system_prompt"]
    assert "+ Added while the app was closed." in prompt


@pytest.mark.asyncio
async def test_send_message_persists_fresh_last_seen(tmp_path: Path) -> None:
    target = tmp_path / "essay.md"
    transport = ScriptedTransport(
        [
            tool_response(("update_document", {"operation": "append", "content": "Agent line."})),
            text_response("Added a line."),
        ]
    )
    session = AgentSession(transport, settings=_settings())
    session.open_path(target, create=True)

    result = await session.send_message("Write something")
    await session.aclose()

    assert result.status is RunStatus.COMPLETED
    assert target.read_text(encoding="utf-8") == "Agent line."
    sidecar = json.loads(sidecar_path_for(target).read_text(encoding="utf-8"))
    assert sidecar["lastSeen"]["content"] == "Agent line."


@pytest.mark.asyncio
async def test_blank_message_is_rejected() -> None:
    session = AgentSession(ScriptedTransport())

    with pytest.raises(ValueError):
        await session.send_message("   ")

    assert len(session.history) == 0


@pytest.mark.asyncio
async def test_concurrent_turn_raises_busy() -> None:
    release = asyncio.Event()

    class _SlowTransport(ScriptedTransport):
        async def send_with_tools(self, messages, system_prompt, tools, callbacks):
            await release.wait()
            return await super().send_with_tools(messages, system_prompt, tools, callbacks)

    session = AgentSession(_SlowTransport([text_response("done")]))
    session.load_document(make_document("Text"))

    first = asyncio.create_task(session.send_message("one"))
    await asyncio.sleep(0)
    assert session.running is True

    with pytest.raises(SessionBusyError):
        await session.send_message("two")

    release.set()
    result = await first
    assert result.status is RunStatus.COMPLETED
    assert session.running is False
