"""Compact line/word diff between two versions of the document prose."""

from __future__ import annotations

from dataclasses import dataclass

from ..utils.text import count_words, format_count, split_lines, truncate

__all__ = ["ContentDiff", "compute_content_diff"]

SAMPLE_LINES = 3
SAMPLE_LINE_CHARS = 80
DIFF_TEXT_LIMIT = 500


@dataclass(slots=True, frozen=True)
class ContentDiff:
    """Summary of how the prose changed, sized for inclusion in a prompt."""

    has_changes: bool
    summary: str
    added_lines: int = 0
    removed_lines: int = 0
    added_words: int = 0
    removed_words: int = 0
    diff_text: str = ""

    @classmethod
    def unchanged(cls) -> "ContentDiff":
        return cls(has_changes=False, summary="No changes")


def compute_content_diff(previous: str, current: str) -> ContentDiff:
    """Diff *previous* against *current* by line membership and word counts.

    Lines are compared as sets, so an edit inside a line shows up as one
    removed and one added line. Blank lines never count.
    """

    if previous == current:
        return ContentDiff.unchanged()

    previous_lines = split_lines(previous)
    current_lines = split_lines(current)
    removed, added = _line_delta(previous_lines, current_lines)

    previous_words = count_words(previous)
    current_words = count_words(current)
    added_words = max(0, current_words - previous_words)
    removed_words = max(0, previous_words - current_words)

    clauses: list[str] = []
    if added:
        clauses.append("added " + format_count(len(added), "line"))
    if removed:
        clauses.append("removed " + format_count(len(removed), "line"))
    if added_words and not added:
        clauses.append("added " + format_count(added_words, "word"))
    if removed_words and not removed:
        clauses.append("removed " + format_count(removed_words, "word"))
    if not clauses:
        clauses.append("content modified")

    return ContentDiff(
        has_changes=True,
        summary=", ".join(clauses),
        added_lines=len(added),
        removed_lines=len(removed),
        added_words=added_words,
        removed_words=removed_words,
        diff_text=_render_samples(removed, added),
    )


def _line_delta(previous_lines: list[str], current_lines: list[str]) -> tuple[list[str], list[str]]:
    previous_set = set(previous_lines)
    current_set = set(current_lines)
    removed = [line for line in previous_lines if line not in current_set and line.strip()]
    added = [line for line in current_lines if line not in previous_set and line.strip()]
    return removed, added


def _render_samples(removed: list[str], added: list[str]) -> str:
    parts: list[str] = []
    if removed:
        parts.append("Removed:")
        parts.extend(_sample_block(removed, "- "))
    if added:
        if parts:
            parts.append("")
        parts.append("Added:")
        parts.extend(_sample_block(added, "+ "))
    text = "\n".join(parts)
    return truncate(text, DIFF_TEXT_LIMIT)


def _sample_block(lines: list[str], prefix: str) -> list[str]:
    shown = lines[:SAMPLE_LINES]
    block = [prefix + truncate(line, SAMPLE_LINE_CHARS) for line in shown]
    remaining = len(lines) - len(shown)
    if remaining > 0:
        block.append(f"  ... and {remaining} more lines")
    return block
