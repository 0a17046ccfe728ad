"""Shared pytest fixtures."""

from __future__ import annotations

import os

import pytest

from penwright.chat.message_model import ChatHistory
from penwright.documents.store import DocumentStore
from penwright.services import telemetry
from penwright.sync.snapshot import SnapshotManager

from tests.helpers import make_document


@pytest.fixture
def store() -> DocumentStore:
    return DocumentStore(make_document("Opening line.\nSecond line.", path="/tmp/essay.md"))


@pytest.fixture
def empty_store() -> DocumentStore:
    return DocumentStore()


@pytest.fixture
def history() -> ChatHistory:
    return ChatHistory()


@pytest.fixture
def snapshots() -> SnapshotManager:
    return SnapshotManager()


@pytest.fixture
def telemetry_sink():
    sink = telemetry.InMemoryTelemetrySink()
    detach = sink.attach("agent_turn_started", "agent_turn_finished", "tool_executed")
    yield sink
    detach()


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in [name for name in os.environ if name.startswith("PENWRIGHT_")]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PENWRIGHT_LOG_DIR", str(tmp_path / "logs"))
