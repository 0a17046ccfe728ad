"""Per-iteration prompt context assembled from the document and the change tracker."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ...documents.models import ConceptSnapshot, DocumentStage, OutlineSection
from ...documents.store import DocumentStore
from ...sync.conflicts import ConflictReport, detect_outline_draft_conflicts
from ...sync.outline_diff import OutlineDiff, StageChange, compute_outline_diff
from ...sync.snapshot import ChangeSet, SnapshotManager
from ...sync.text_diff import ContentDiff, compute_content_diff
from ...utils.text import count_words, is_blank
from ..prompts import DOCUMENT_PREVIEW_CHARS

LOGGER = logging.getLogger(__name__)

__all__ = ["PromptContext", "build_prompt_context"]


@dataclass(slots=True)
class PromptContext:
    """Everything the system prompt for one model call is built from."""

    stage: DocumentStage
    concept: ConceptSnapshot | None = None
    outline: tuple[OutlineSection, ...] | None = None
    document_preview: str = ""
    word_count: int = 0
    preview_chars: int = DOCUMENT_PREVIEW_CHARS
    content_diff: ContentDiff | None = None
    outline_diff: OutlineDiff | None = None
    stage_change: StageChange | None = None
    conflicts: ConflictReport | None = None

    @property
    def has_user_changes(self) -> bool:
        return (
            (self.content_diff is not None and self.content_diff.has_changes)
            or (self.outline_diff is not None and self.outline_diff.has_changes)
            or self.stage_change is not None
        )


def build_prompt_context(
    store: DocumentStore,
    snapshots: SnapshotManager,
    *,
    preview_chars: int = DOCUMENT_PREVIEW_CHARS,
) -> PromptContext:
    """Read the store and attach diffs only when something moved since the last snapshot."""

    content = store.content
    context = PromptContext(
        stage=store.stage or DocumentStage.CONCEPT,
        concept=store.concept,
        outline=store.outline,
        document_preview=content,
        word_count=count_words(content),
        preview_chars=preview_chars,
    )

    changes = snapshots.changes_since(store)
    if changes is not None:
        _attach_changes(context, changes, content)
    return context


def _attach_changes(context: PromptContext, changes: ChangeSet, content: str) -> None:
    if changes.content_changed and changes.previous_content is not None:
        diff = compute_content_diff(changes.previous_content, changes.current_content)
        if diff.has_changes:
            context.content_diff = diff

    if changes.outline_changed:
        diff = compute_outline_diff(changes.previous_outline, changes.current_outline)
        if diff.has_changes:
            context.outline_diff = diff
            if (
                changes.previous_outline is not None
                and changes.current_outline is not None
                and not is_blank(content)
            ):
                report = detect_outline_draft_conflicts(changes.previous_outline, changes.current_outline, content)
                if report.has_conflicts:
                    LOGGER.debug("Outline edit conflicts with draft: %s", report.summary)
                    context.conflicts = report

    if changes.stage_changed and changes.previous_stage and changes.current_stage:
        context.stage_change = StageChange(changes.previous_stage.value, changes.current_stage.value)
