"""Markdown + JSON sidecar persistence and debounced autosave."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from ..utils.file_io import read_text, write_json, write_text
from .models import Document
from .store import DocumentStore

LOGGER = logging.getLogger(__name__)

__all__ = [
    "DebouncedDocumentSaver",
    "DocumentLoadError",
    "DocumentRepository",
    "StoredDocument",
    "sidecar_path_for",
]

SIDECAR_SUFFIX = ".penwright.json"
_IGNORED_CHANGES = frozenset({"loaded", "closed"})


class DocumentLoadError(RuntimeError):
    """Raised when a document cannot be read from or written to disk."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = Path(path)
        self.reason = reason


@dataclass(slots=True)
class StoredDocument:
    """A loaded document plus the last-seen payload recorded in its sidecar."""

    document: Document
    last_seen: Any = None


def sidecar_path_for(path: Path | str) -> Path:
    target = Path(path)
    return target.with_name(f"{target.stem}{SIDECAR_SUFFIX}")


class DocumentRepository:
    """Loads and saves documents as ``<name>.md`` next to ``<name>.penwright.json``."""

    def load(self, path: Path | str) -> StoredDocument:
        target = Path(path).expanduser()
        try:
            content = read_text(target)
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentLoadError(target, f"unable to read document ({exc})") from exc

        sidecar_path = sidecar_path_for(target)
        payload = self._read_sidecar(sidecar_path)
        document = Document.from_sidecar(content, payload, path=str(target))
        if payload is None:
            LOGGER.info("Creating sidecar for %s", target)
            self._write_sidecar(sidecar_path, document, last_seen=None)
            return StoredDocument(document=document)

        last_seen = payload.get("lastSeen") if isinstance(payload, dict) else None
        return StoredDocument(document=document, last_seen=last_seen)

    def create(self, path: Path | str) -> StoredDocument:
        """Write an empty document at *path* and load it."""

        target = Path(path).expanduser()
        try:
            write_text(target, "")
        except OSError as exc:
            raise DocumentLoadError(target, f"unable to create document ({exc})") from exc
        return self.load(target)

    def save(self, document: Document, *, last_seen: Any = None) -> Path:
        if not document.path:
            raise DocumentLoadError("<unsaved>", "document has no path")
        target = Path(document.path)
        try:
            write_text(target, document.content)
        except OSError as exc:
            raise DocumentLoadError(target, f"unable to write document ({exc})") from exc
        self._write_sidecar(sidecar_path_for(target), document, last_seen=last_seen)
        LOGGER.debug("Saved %s (%s chars)", target, len(document.content))
        return target

    def _read_sidecar(self, path: Path) -> Any:
        if not path.exists():
            return None
        try:
            return json.loads(read_text(path))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            LOGGER.warning("Ignoring unreadable sidecar %s: %s", path, exc)
            return {}

    def _write_sidecar(self, path: Path, document: Document, *, last_seen: Any) -> None:
        payload = document.sidecar_payload()
        if last_seen is not None:
            payload["lastSeen"] = last_seen
        try:
            write_json(path, payload)
        except OSError as exc:
            raise DocumentLoadError(path, f"unable to write sidecar ({exc})") from exc


class DebouncedDocumentSaver:
    """Saves the store's document a short while after the last mutation.

    Saves run as background tasks on the running event loop; callers never
    await them. :meth:`flush` writes any pending change immediately.
    """

    def __init__(
        self,
        store: DocumentStore,
        repository: DocumentRepository,
        *,
        delay: float = 0.5,
        last_seen_provider: Callable[[], Any] | None = None,
    ) -> None:
        self._store = store
        self._repository = repository
        self._delay = max(0.0, float(delay))
        self._last_seen_provider = last_seen_provider
        self._pending: asyncio.Task[None] | None = None
        self._dirty = False
        self._background: set[asyncio.Task[None]] = set()
        self._unsubscribe = store.add_listener(self._on_store_change)

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def close(self) -> None:
        self._cancel_pending()
        self._unsubscribe()

    async def flush(self, *, force: bool = False) -> Path | None:
        """Cancel the pending timer and save now if anything changed.

        ``force`` saves even a clean document, which is how a fresh
        last-seen snapshot reaches the sidecar after an agent turn.
        """

        self._cancel_pending()
        if not self._dirty and not force:
            return None
        return self._save_now()

    def _on_store_change(self, store: DocumentStore, change: str) -> None:
        if change in _IGNORED_CHANGES:
            if change == "closed":
                self._cancel_pending()
                self._dirty = False
            return
        self._dirty = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running loop; deferring save of %s until flush", change)
            return
        self._cancel_pending()
        task = loop.create_task(self._save_later())
        self._pending = task
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _save_later(self) -> None:
        await asyncio.sleep(self._delay)
        self._pending = None
        try:
            self._save_now()
        except DocumentLoadError:
            LOGGER.exception("Autosave failed")

    def _save_now(self) -> Path | None:
        document = self._store.document
        if document is None or not document.path:
            self._dirty = False
            return None
        last_seen = self._last_seen_provider() if self._last_seen_provider else None
        path = self._repository.save(document, last_seen=last_seen)
        self._dirty = False
        return path

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
