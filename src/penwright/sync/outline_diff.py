"""Id-keyed outline comparison and the prompt block describing user changes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ..documents.models import OutlineSection
from ..utils.text import format_count, truncate
from .text_diff import ContentDiff

__all__ = [
    "OutlineDiff",
    "SectionModification",
    "StageChange",
    "compute_outline_diff",
    "format_changes_for_prompt",
]

TITLE_PREVIEW_CHARS = 30


@dataclass(slots=True, frozen=True)
class SectionModification:
    title: str
    changes: str


@dataclass(slots=True, frozen=True)
class OutlineDiff:
    has_changes: bool
    summary: str
    added_sections: tuple[str, ...] = ()
    removed_sections: tuple[str, ...] = ()
    modified_sections: tuple[SectionModification, ...] = ()
    reordered: bool = False


@dataclass(slots=True, frozen=True)
class StageChange:
    previous: str
    current: str


def compute_outline_diff(
    previous: Sequence[OutlineSection] | None,
    current: Sequence[OutlineSection] | None,
) -> OutlineDiff:
    """Compare two outlines section by section using their stable ids."""

    if previous is None and current is None:
        return OutlineDiff(has_changes=False, summary="No outline")
    if previous is None:
        assert current is not None
        return OutlineDiff(
            has_changes=True,
            summary="Outline created with " + format_count(len(current), "section"),
            added_sections=tuple(section.title for section in current),
        )
    if current is None:
        return OutlineDiff(
            has_changes=True,
            summary="Outline removed",
            removed_sections=tuple(section.title for section in previous),
        )

    previous_by_id = {section.id: section for section in previous}
    current_ids = {section.id for section in current}

    removed = [section.title for section in previous if section.id not in current_ids]
    added: list[str] = []
    modified: list[SectionModification] = []
    for section in current:
        before = previous_by_id.get(section.id)
        if before is None:
            added.append(section.title)
            continue
        changes = _describe_changes(before, section)
        if changes:
            modified.append(SectionModification(title=section.title, changes=", ".join(changes)))

    reordered = False
    if not added and not removed:
        reordered = [section.id for section in previous] != [section.id for section in current]

    clauses: list[str] = []
    if added:
        clauses.append(format_count(len(added), "section") + " added")
    if removed:
        clauses.append(format_count(len(removed), "section") + " removed")
    if modified:
        clauses.append(format_count(len(modified), "section") + " modified")
    if reordered and not clauses:
        clauses.append("sections reordered")

    has_changes = bool(clauses)
    return OutlineDiff(
        has_changes=has_changes,
        summary=", ".join(clauses) if has_changes else "No changes",
        added_sections=tuple(added),
        removed_sections=tuple(removed),
        modified_sections=tuple(modified),
        reordered=reordered,
    )


def _describe_changes(before: OutlineSection, after: OutlineSection) -> list[str]:
    changes: list[str] = []
    if before.title != after.title:
        changes.append(
            f'title changed from "{truncate(before.title, TITLE_PREVIEW_CHARS)}" '
            f'to "{truncate(after.title, TITLE_PREVIEW_CHARS)}"'
        )
    if before.description != after.description:
        changes.append("description updated")
    if before.estimated_words != after.estimated_words:
        changes.append(
            "word estimate changed from "
            f"{_estimate_label(before.estimated_words)} to {_estimate_label(after.estimated_words)}"
        )
    return changes


def _estimate_label(value: int | None) -> str:
    return "none" if value is None else str(value)


def format_changes_for_prompt(
    content_diff: ContentDiff | None,
    outline_diff: OutlineDiff | None,
    stage_change: StageChange | None,
) -> str:
    """Render user edits as a markdown block; returns ``""`` when nothing changed."""

    has_content = content_diff is not None and content_diff.has_changes
    has_outline = outline_diff is not None and outline_diff.has_changes
    if not has_content and not has_outline and stage_change is None:
        return ""

    lines = [
        "## User Changes Since Last Response\n",
        "The user has made the following manual changes:\n",
    ]
    if stage_change is not None:
        lines.append("### Stage Change")
        lines.append(
            f"Document stage changed from **{stage_change.previous}** to **{stage_change.current}**.\n"
        )

    if has_content:
        assert content_diff is not None
        lines.append("### Content Changes")
        lines.append(f"**Summary:** {content_diff.summary}")
        if content_diff.diff_text:
            lines.extend(["\n```diff", content_diff.diff_text, "```\n"])

    if has_outline:
        assert outline_diff is not None
        lines.append("### Outline Changes")
        lines.append(f"**Summary:** {outline_diff.summary}")
        if outline_diff.added_sections:
            lines.append("\n**Added sections:**")
            lines.extend(f"- {title}" for title in outline_diff.added_sections)
        if outline_diff.removed_sections:
            lines.append("\n**Removed sections:**")
            lines.extend(f"- {title}" for title in outline_diff.removed_sections)
        if outline_diff.modified_sections:
            lines.append("\n**Modified sections:**")
            lines.extend(f"- **{mod.title}:** {mod.changes}" for mod in outline_diff.modified_sections)
        lines.append("")

    return "\n".join(lines)
