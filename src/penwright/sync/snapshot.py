"""Track what the agent last saw so each turn can be told what the user changed."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from ..documents.models import DocumentStage, OutlineSection, outline_from_payload, outline_to_payload
from ..documents.store import DocumentStore

LOGGER = logging.getLogger(__name__)

__all__ = ["ChangeSet", "LastSeenSnapshot", "SnapshotManager"]


@dataclass(slots=True, frozen=True)
class LastSeenSnapshot:
    """Document facets as they were when the agent's context was last synced."""

    content: str = ""
    outline: tuple[OutlineSection, ...] | None = None
    stage: DocumentStage | None = None

    @classmethod
    def empty(cls) -> "LastSeenSnapshot":
        return cls()

    @classmethod
    def capture(cls, store: DocumentStore) -> "LastSeenSnapshot":
        outline = store.outline
        return cls(
            content=store.content,
            outline=tuple(outline) if outline is not None else None,
            stage=store.stage,
        )


@dataclass(slots=True, frozen=True)
class ChangeSet:
    """Facets that differ between the baseline and the live document."""

    content_changed: bool
    previous_content: str | None
    current_content: str
    outline_changed: bool
    previous_outline: tuple[OutlineSection, ...] | None
    current_outline: tuple[OutlineSection, ...] | None
    stage_changed: bool
    previous_stage: DocumentStage | None
    current_stage: DocumentStage | None


class SnapshotManager:
    """Owns the last-seen baseline for a single document session."""

    def __init__(self) -> None:
        self._baseline = LastSeenSnapshot.empty()

    @property
    def baseline(self) -> LastSeenSnapshot:
        return self._baseline

    def snapshot_now(self, store: DocumentStore) -> LastSeenSnapshot:
        """Overwrite the baseline with the store's current state."""

        self._baseline = LastSeenSnapshot.capture(store)
        LOGGER.debug(
            "Snapshot taken (chars=%s, sections=%s, stage=%s)",
            len(self._baseline.content),
            len(self._baseline.outline) if self._baseline.outline is not None else None,
            self._baseline.stage.value if self._baseline.stage else None,
        )
        return self._baseline

    def reset(self) -> None:
        self._baseline = LastSeenSnapshot.empty()

    def changes_since(self, store: DocumentStore) -> ChangeSet | None:
        """Return the delta against the baseline, or ``None`` when nothing moved."""

        baseline = self._baseline
        current_content = store.content
        current_outline = store.outline
        if current_outline is not None:
            current_outline = tuple(current_outline)
        current_stage = store.stage

        content_changed = baseline.content != current_content
        outline_changed = baseline.outline != current_outline
        stage_changed = baseline.stage is not current_stage
        if not (content_changed or outline_changed or stage_changed):
            return None

        return ChangeSet(
            content_changed=content_changed,
            previous_content=baseline.content or None,
            current_content=current_content,
            outline_changed=outline_changed,
            previous_outline=baseline.outline,
            current_outline=current_outline,
            stage_changed=stage_changed,
            previous_stage=baseline.stage,
            current_stage=current_stage,
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def to_payload(self) -> dict[str, Any]:
        baseline = self._baseline
        return {
            "content": baseline.content,
            "outline": outline_to_payload(baseline.outline),
            "stage": baseline.stage.value if baseline.stage else None,
        }

    def restore(self, payload: Any) -> bool:
        """Load a persisted baseline; malformed payloads reset to "no prior state".

        Returns ``True`` when the payload was accepted.
        """

        snapshot = _parse_payload(payload)
        if snapshot is None:
            if payload is not None:
                LOGGER.warning("Discarding malformed last-seen snapshot payload")
            self.reset()
            return False
        self._baseline = snapshot
        return True


def _parse_payload(payload: Any) -> LastSeenSnapshot | None:
    if not isinstance(payload, Mapping):
        return None
    content = payload.get("content", "")
    if not isinstance(content, str):
        return None

    raw_outline = payload.get("outline")
    outline = outline_from_payload(raw_outline)
    if raw_outline is not None and outline is None:
        return None

    raw_stage = payload.get("stage")
    stage = None
    if raw_stage is not None:
        stage = DocumentStage.parse(raw_stage)
        if stage is None:
            return None
    return LastSeenSnapshot(content=content, outline=outline, stage=stage)
