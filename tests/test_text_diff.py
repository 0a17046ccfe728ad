"""Tests for the content diff engine."""

from __future__ import annotations

import pytest

from penwright.sync.text_diff import DIFF_TEXT_LIMIT, compute_content_diff


@pytest.mark.parametrize("text", ["", "one line", "Line 1\nLine 2\n\nLine 4", "a\r\nb"])
def test_identical_text_has_no_changes(text: str) -> None:
    diff = compute_content_diff(text, text)

    assert diff.has_changes is False
    assert diff.summary == "No changes"
    assert diff.diff_text == ""


def test_appended_lines_are_counted() -> None:
    diff = compute_content_diff("Line 1\nLine 2", "Line 1\nLine 2\nLine 3\nLine 4")

    assert diff.has_changes is True
    assert diff.added_lines == 2
    assert diff.removed_lines == 0
    assert "added 2 lines" in diff.summary
    assert diff.added_words == 4
    assert diff.diff_text == "Added:\n+ Line 3\n+ Line 4"


def test_edit_inside_a_line_reports_one_removed_and_one_added() -> None:
    diff = compute_content_diff("The cat sat.\nEnd.", "The dog sat.\nEnd.")

    assert diff.added_lines == 1
    assert diff.removed_lines == 1
    assert diff.summary == "added 1 line, removed 1 line"
    assert diff.diff_text == "Removed:\n- The cat sat.\n\nAdded:\n+ The dog sat."


def test_moving_blank_lines_reports_content_modified() -> None:
    diff = compute_content_diff("alpha beta\n\ngamma", "alpha beta\ngamma\n\n")

    assert diff.has_changes is True
    assert diff.added_lines == 0
    assert diff.removed_lines == 0
    assert diff.summary == "content modified"


def test_word_clause_used_when_line_sets_match_but_words_differ() -> None:
    previous = "repeat me\nrepeat me\nend"
    current = "repeat me\nend"

    diff = compute_content_diff(previous, current)

    assert diff.added_lines == 0
    assert diff.removed_lines == 0
    assert diff.removed_words == 2
    assert diff.summary == "removed 2 words"


def test_blank_lines_are_never_counted() -> None:
    diff = compute_content_diff("a", "a\n\n   \n")

    assert diff.added_lines == 0
    assert diff.summary == "content modified"


def test_crlf_only_difference_is_flagged_without_deltas() -> None:
    diff = compute_content_diff("one\ntwo", "one\r\ntwo")

    assert diff.has_changes is True
    assert diff.added_lines == diff.removed_lines == 0
    assert diff.added_words == diff.removed_words == 0
    assert diff.summary == "content modified"


def test_samples_are_capped_and_overflow_is_noted() -> None:
    current = "\n".join(f"new line {index}" for index in range(6))

    diff = compute_content_diff("", current)

    lines = diff.diff_text.splitlines()
    assert lines[0] == "Added:"
    assert lines[1:4] == ["+ new line 0", "+ new line 1", "+ new line 2"]
    assert lines[4] == "  ... and 3 more lines"


def test_long_lines_and_diff_text_are_truncated() -> None:
    long_line = "x" * 200
    previous = "\n".join(f"{long_line}{index}" for index in range(3))
    current = "\n".join(f"{long_line}-{index}" for index in range(3))

    diff = compute_content_diff(previous, current)

    assert all(len(line) <= 82 for line in diff.diff_text.splitlines())
    assert len(diff.diff_text) <= DIFF_TEXT_LIMIT


def test_removed_everything() -> None:
    diff = compute_content_diff("first\nsecond", "")

    assert diff.removed_lines == 2
    assert diff.removed_words == 2
    assert diff.summary == "removed 2 lines"
    assert diff.diff_text.startswith("Removed:\n- first")
