"""Change tracking, diffing, and outline/draft conflict detection."""

from .conflicts import (
    ConflictReport,
    ConflictType,
    OutlineDraftConflict,
    detect_outline_draft_conflicts,
    format_conflicts_for_prompt,
)
from .outline_diff import (
    OutlineDiff,
    SectionModification,
    StageChange,
    compute_outline_diff,
    format_changes_for_prompt,
)
from .snapshot import ChangeSet, LastSeenSnapshot, SnapshotManager
from .text_diff import ContentDiff, compute_content_diff

__all__ = [
    "ChangeSet",
    "ConflictReport",
    "ConflictType",
    "ContentDiff",
    "LastSeenSnapshot",
    "OutlineDiff",
    "OutlineDraftConflict",
    "SectionModification",
    "SnapshotManager",
    "StageChange",
    "compute_content_diff",
    "compute_outline_diff",
    "detect_outline_draft_conflicts",
    "format_changes_for_prompt",
    "format_conflicts_for_prompt",
]
