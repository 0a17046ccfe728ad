"""Detect drafted prose that an outline edit has made stale.

Draft sections are recovered from ``## Heading`` lines and matched to the
previous outline by title. Each matched section is then checked against the
current outline for deletion, meaningful modification, and large moves.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from ..documents.models import OutlineSection
from ..utils.text import is_blank, normalize_whitespace, truncate_at_word

__all__ = [
    "ConflictReport",
    "ConflictType",
    "DraftSection",
    "OutlineDraftConflict",
    "detect_outline_draft_conflicts",
    "extract_draft_sections",
    "format_conflicts_for_prompt",
]

PREVIEW_CHARS = 200
PREVIEW_WORD_BREAK_RATIO = 0.7
DESCRIPTION_CHAR_THRESHOLD = 50
DESCRIPTION_RATIO_THRESHOLD = 0.2
REORDER_THRESHOLD = 2

_HEADING_RE = re.compile(r"^##\s+(.+)$")


class ConflictType(str, Enum):
    DELETED = "deleted"
    MODIFIED = "modified"
    REORDERED = "reordered"


@dataclass(slots=True, frozen=True)
class DraftSection:
    title: str
    content: str
    start_line: int
    end_line: int


@dataclass(slots=True, frozen=True)
class OutlineDraftConflict:
    section_id: str
    section_title: str
    conflict_type: ConflictType
    outline_change: str
    affected_draft_preview: str


@dataclass(slots=True, frozen=True)
class ConflictReport:
    has_conflicts: bool
    summary: str
    conflicts: tuple[OutlineDraftConflict, ...] = ()

    def count(self, conflict_type: ConflictType) -> int:
        return sum(1 for conflict in self.conflicts if conflict.conflict_type is conflict_type)


def normalize_title(title: str) -> str:
    return normalize_whitespace(title.lower())


def extract_draft_sections(draft: str) -> list[DraftSection]:
    """Split *draft* into ``##``-headed sections; text before the first heading is dropped."""

    lines = draft.split("\n")
    sections: list[DraftSection] = []
    title: str | None = None
    body: list[str] = []
    start = 0

    for index, line in enumerate(lines):
        match = _HEADING_RE.match(line)
        if match is None:
            if title is not None:
                body.append(line)
            continue
        if title is not None:
            sections.append(DraftSection(title, "\n".join(body).strip(), start, index - 1))
        title = match.group(1).strip()
        body = []
        start = index

    if title is not None:
        sections.append(DraftSection(title, "\n".join(body).strip(), start, len(lines) - 1))
    return sections


def _match_sections(
    draft_sections: Sequence[DraftSection],
    outline: Sequence[OutlineSection],
) -> dict[str, DraftSection]:
    normalized = [(section, normalize_title(section.title)) for section in outline]
    matched: dict[str, DraftSection] = {}
    for draft_section in draft_sections:
        wanted = normalize_title(draft_section.title)
        target = next((section for section, title in normalized if title == wanted), None)
        if target is None:
            target = next(
                (section for section, title in normalized if wanted in title or title in wanted),
                None,
            )
        if target is not None:
            matched[target.id] = draft_section
    return matched


def _preview(content: str) -> str:
    return truncate_at_word(content.strip(), PREVIEW_CHARS, min_ratio=PREVIEW_WORD_BREAK_RATIO)


def _modification(before: OutlineSection, after: OutlineSection) -> str | None:
    changes: list[str] = []
    if normalize_title(before.title) != normalize_title(after.title):
        changes.append(f'title changed from "{before.title}" to "{after.title}"')

    if normalize_title(before.description) != normalize_title(after.description):
        before_len = len(before.description)
        after_len = len(after.description)
        delta = abs(before_len - after_len)
        relative = delta / max(before_len, after_len, 1)
        if delta > DESCRIPTION_CHAR_THRESHOLD or relative > DESCRIPTION_RATIO_THRESHOLD:
            changes.append("description significantly modified")

    if before.estimated_words != after.estimated_words:
        changes.append(
            "word count estimate changed from "
            f"{_unset(before.estimated_words)} to {_unset(after.estimated_words)}"
        )
    return "; ".join(changes) if changes else None


def _unset(value: int | None) -> str:
    return "unset" if value is None else str(value)


def detect_outline_draft_conflicts(
    previous: Sequence[OutlineSection],
    current: Sequence[OutlineSection],
    draft: str,
) -> ConflictReport:
    """Report drafted sections whose outline entry was deleted, changed, or moved."""

    if is_blank(draft):
        return ConflictReport(False, "No draft content to check for conflicts.")

    draft_sections = extract_draft_sections(draft)
    if not draft_sections:
        return ConflictReport(False, "No recognizable sections found in draft content.")

    previous_by_id = {section.id: section for section in previous}
    current_by_id = {section.id: section for section in current}
    previous_order = {section.id: index for index, section in enumerate(previous)}
    current_order = {section.id: index for index, section in enumerate(current)}

    conflicts: list[OutlineDraftConflict] = []
    for section_id, draft_section in _match_sections(draft_sections, previous).items():
        before = previous_by_id[section_id]
        after = current_by_id.get(section_id)
        preview = _preview(draft_section.content)

        if after is None:
            conflicts.append(
                OutlineDraftConflict(
                    section_id=section_id,
                    section_title=before.title,
                    conflict_type=ConflictType.DELETED,
                    outline_change=f'Section "{before.title}" was removed from the outline',
                    affected_draft_preview=preview,
                )
            )
            continue

        change = _modification(before, after)
        if change is not None:
            conflicts.append(
                OutlineDraftConflict(section_id, after.title, ConflictType.MODIFIED, change, preview)
            )

        old_position = previous_order[section_id]
        new_position = current_order[section_id]
        if abs(old_position - new_position) >= REORDER_THRESHOLD:
            conflicts.append(
                OutlineDraftConflict(
                    section_id,
                    after.title,
                    ConflictType.REORDERED,
                    f"Section moved from position {old_position + 1} to position {new_position + 1}",
                    preview,
                )
            )

    return ConflictReport(
        has_conflicts=bool(conflicts),
        summary=_summarize(conflicts),
        conflicts=tuple(conflicts),
    )


def _summarize(conflicts: Sequence[OutlineDraftConflict]) -> str:
    if not conflicts:
        return "No conflicts detected between outline changes and draft content."
    parts = []
    for conflict_type in ConflictType:
        count = sum(1 for conflict in conflicts if conflict.conflict_type is conflict_type)
        if count:
            parts.append(f"{count} {conflict_type.value}")
    return (
        f"Found {len(conflicts)} conflict(s): {', '.join(parts)}. "
        "Draft content may need to be updated to match the new outline."
    )


_TYPE_HEADINGS = {
    ConflictType.DELETED: "Section Deleted",
    ConflictType.MODIFIED: "Section Modified",
    ConflictType.REORDERED: "Section Reordered",
}


def format_conflicts_for_prompt(report: ConflictReport) -> str:
    """Render *report* as markdown; empty when there is nothing to reconcile."""

    if not report.has_conflicts:
        return ""

    lines = [
        "## Outline-Draft Conflicts Detected",
        "",
        report.summary,
        "",
        "The following sections have potential conflicts that may need reconciliation:",
        "",
    ]
    for conflict in report.conflicts:
        lines.extend([f"### {conflict.section_title}", ""])
        lines.extend([f"**Conflict Type:** {_TYPE_HEADINGS[conflict.conflict_type]}", ""])
        if conflict.conflict_type is ConflictType.DELETED:
            lines.append("This section was removed from the outline, but draft content still exists.")
        else:
            lines.append(f"**Changes:** {conflict.outline_change}")
        lines.extend(
            ["", "**Affected Draft Content Preview:**", "```", conflict.affected_draft_preview, "```", ""]
        )

    lines.extend(
        [
            "---",
            "",
            "Please help the user reconcile these conflicts. Consider:",
            "- Whether the existing draft content should be updated to match the new outline",
            "- Whether any drafted content should be moved, merged, or removed",
            "- How to preserve valuable content while aligning with the updated structure",
        ]
    )
    return "\n".join(lines)
