"""Conversation session binding a document, its chat history and the agent loop."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from ...chat.message_model import ChatHistory
from ...documents.models import Document
from ...documents.persistence import DebouncedDocumentSaver, DocumentRepository
from ...documents.store import DocumentStore
from ...services.settings import Settings
from ...sync.snapshot import SnapshotManager
from ..ai_types import ModelTransport
from ..tools.executor import ToolExecutor
from .loop import AgentCallbacks, AgentLoop, AgentRunResult

LOGGER = logging.getLogger(__name__)

__all__ = ["AgentSession", "SessionBusyError"]


class SessionBusyError(RuntimeError):
    """Raised when a message is sent while a previous turn is still running."""


class AgentSession:
    """Owns the state one writing conversation needs.

    A session holds the document store, the chat history and the last-seen
    snapshot the agent is diffed against. Turns are strictly sequential; a
    second :meth:`send_message` while one is running raises
    :class:`SessionBusyError`.
    """

    def __init__(
        self,
        transport: ModelTransport,
        *,
        store: DocumentStore | None = None,
        history: ChatHistory | None = None,
        snapshots: SnapshotManager | None = None,
        loop: AgentLoop | None = None,
        repository: DocumentRepository | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self.transport = transport
        self.store = store or DocumentStore()
        self.history = history or ChatHistory()
        self.snapshots = snapshots or SnapshotManager()
        self._loop = loop or AgentLoop(
            ToolExecutor(log_arguments=self._settings.debug_logging),
            max_iterations=self._settings.max_iterations,
            preview_chars=self._settings.document_preview_chars,
        )
        self._repository = repository
        self._saver: DebouncedDocumentSaver | None = None
        self._running = False

    @property
    def loop(self) -> AgentLoop:
        return self._loop

    @property
    def running(self) -> bool:
        return self._running

    @property
    def saver(self) -> DebouncedDocumentSaver | None:
        return self._saver

    def load_document(self, document: Document, *, last_seen: Any = None) -> None:
        """Load *document* and set the baseline the next turn is diffed against.

        A persisted ``last_seen`` payload is restored when it is valid, so
        edits made outside the session since the last turn are reported to
        the agent. Otherwise the loaded document itself is the baseline.
        """

        self.store.load(document)
        if last_seen is None or not self.snapshots.restore(last_seen):
            self.snapshots.snapshot_now(self.store)
        LOGGER.info("Loaded document %s (stage=%s)", document.filename, document.stage.value)

    def open_path(self, path: Path | str, *, create: bool = False) -> Document:
        """Load a document and its sidecar from disk and autosave further edits."""

        repository = self._require_repository()
        target = Path(path).expanduser()
        stored = repository.create(target) if create and not target.exists() else repository.load(target)
        self._close_saver()
        self.load_document(stored.document, last_seen=stored.last_seen)
        self._saver = DebouncedDocumentSaver(
            self.store,
            repository,
            delay=self._settings.autosave_delay,
            last_seen_provider=self.snapshots.to_payload,
        )
        return stored.document

    def close_document(self) -> None:
        self._close_saver()
        self.store.close()
        self.snapshots.reset()

    async def send_message(self, text: str, callbacks: AgentCallbacks | None = None) -> AgentRunResult:
        """Append a user message and run one agent turn."""

        if self._running:
            raise SessionBusyError("An agent turn is already running")
        if not text.strip():
            raise ValueError("Message text must not be empty")
        self._running = True
        try:
            self.history.add_user_text(text)
            result = await self._loop.run(self, callbacks)
        finally:
            self._running = False
        if self._saver is not None:
            await self._saver.flush(force=True)
        return result

    async def aclose(self) -> None:
        if self._saver is not None:
            await self._saver.flush()
        self._close_saver()

    def _require_repository(self) -> DocumentRepository:
        if self._repository is None:
            self._repository = DocumentRepository()
        return self._repository

    def _close_saver(self) -> None:
        if self._saver is not None:
            self._saver.close()
            self._saver = None
