"""In-memory owner of the open document.

The editor pushes user mutations in through ``update_*`` methods and the tool
executor pushes agent mutations through the same surface. Listeners are told
which facet changed so persistence can react without polling.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Sequence

from .models import (
    ConceptSnapshot,
    Document,
    DocumentStage,
    EditSuggestion,
    OutlineSection,
    OutlineVersion,
)

LOGGER = logging.getLogger(__name__)

__all__ = ["DocumentStore", "NoDocumentLoaded", "StoreListener"]

StoreListener = Callable[["DocumentStore", str], None]


class NoDocumentLoaded(RuntimeError):
    """Raised when a mutation is attempted while no document is open."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"No document loaded; cannot {operation}")
        self.operation = operation


class DocumentStore:
    """Holds the single open :class:`Document` and fans out change notifications."""

    def __init__(self, document: Document | None = None) -> None:
        self._document: Document | None = None
        self._listeners: list[StoreListener] = []
        if document is not None:
            self.load(document)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def load(self, document: Document) -> None:
        self._document = document
        LOGGER.debug(
            "Loaded document %s (stage=%s, chars=%s)",
            document.document_id,
            document.stage.value,
            len(document.content),
        )
        self._notify("loaded")

    def close(self) -> None:
        if self._document is None:
            return
        LOGGER.debug("Closing document %s", self._document.document_id)
        self._document = None
        self._notify("closed")

    def add_listener(self, listener: StoreListener) -> Callable[[], None]:
        """Register *listener* and return a callable that removes it."""

        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def document(self) -> Document | None:
        return self._document

    @property
    def is_loaded(self) -> bool:
        return self._document is not None

    @property
    def content(self) -> str:
        return self._document.content if self._document else ""

    @property
    def stage(self) -> DocumentStage | None:
        return self._document.stage if self._document else None

    @property
    def outline(self) -> tuple[OutlineSection, ...] | None:
        return self._document.outline if self._document else None

    @property
    def concept(self) -> ConceptSnapshot | None:
        return self._document.concept if self._document else None

    @property
    def filename(self) -> str | None:
        return self._document.filename if self._document else None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def update_content(self, content: str) -> None:
        document = self._require("update content")
        if document.content == content:
            return
        document.content = content
        self._notify("content")

    def update_stage(self, stage: DocumentStage | str) -> DocumentStage:
        """Set the stage and return the previous one."""

        document = self._require("update stage")
        target = DocumentStage(stage)
        previous = document.stage
        document.stage = target
        if previous is not target:
            LOGGER.debug("Stage changed %s -> %s", previous.value, target.value)
            self._notify("stage")
        return previous

    def update_concept(
        self,
        *,
        title: str,
        core_argument: str,
        audience: str,
        tone: str,
    ) -> ConceptSnapshot:
        document = self._require("update concept")
        snapshot = ConceptSnapshot(title=title, core_argument=core_argument, audience=audience, tone=tone)
        document.concept = snapshot
        document.concept_versions.append(snapshot)
        self._notify("concept")
        return snapshot

    def update_outline(self, sections: Sequence[OutlineSection]) -> tuple[OutlineSection, ...]:
        """Replace the outline and append it to the version log."""

        document = self._require("update outline")
        outline = tuple(sections)
        ids = [section.id for section in outline]
        if len(ids) != len(set(ids)):
            raise ValueError("Outline section ids must be unique")
        document.outline = outline
        document.outline_versions.append(OutlineVersion(sections=outline))
        self._notify("outline")
        return outline

    def save_outline_from_editor(self, sections: Iterable[OutlineSection]) -> tuple[OutlineSection, ...]:
        """Persist an outline edited by hand, dropping rows the user left empty."""

        kept = [
            section
            for section in sections
            if section.title.strip() or section.description.strip()
        ]
        return self.update_outline(kept)

    def add_edit_suggestion(
        self,
        *,
        scope: str,
        before: str,
        after: str,
        rationale: str | None = None,
    ) -> EditSuggestion:
        document = self._require("record an edit suggestion")
        suggestion = EditSuggestion(scope=scope, before=before, after=after, rationale=rationale)
        document.edit_history.append(suggestion)
        self._notify("edit_suggestion")
        return suggestion

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _require(self, operation: str) -> Document:
        if self._document is None:
            raise NoDocumentLoaded(operation)
        return self._document

    def _notify(self, change: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(self, change)
            except Exception:  # pragma: no cover - listeners must not break mutations
                LOGGER.exception("Document store listener failed for change %s", change)
