"""Small text helpers shared by the diff engines, tools, and prompt builder."""

from __future__ import annotations

import re

__all__ = [
    "count_words",
    "format_count",
    "is_blank",
    "normalize_whitespace",
    "split_lines",
    "truncate",
    "truncate_at_word",
]

_WHITESPACE_RE = re.compile(r"\s+")
_LINE_BREAK_RE = re.compile(r"\r?\n")


def count_words(text: str) -> int:
    """Return the number of whitespace-separated words in *text*."""

    if not text:
        return 0
    return len(text.split())


def split_lines(text: str) -> list[str]:
    """Split *text* on ``\\n`` or ``\\r\\n`` boundaries."""

    return _LINE_BREAK_RE.split(text)


def truncate(text: str, max_length: int, suffix: str = "...") -> str:
    """Clip *text* to ``max_length`` characters including the suffix."""

    if len(text) <= max_length:
        return text
    return text[: max(0, max_length - len(suffix))] + suffix


def truncate_at_word(text: str, max_length: int, *, min_ratio: float, suffix: str = "...") -> str:
    """Clip *text* to ``max_length`` characters, preferring a word boundary.

    The cut happens at the last space when that space sits at least
    ``min_ratio * max_length`` characters in; otherwise the hard limit is used.
    """

    if len(text) <= max_length:
        return text
    clipped = text[:max_length]
    last_space = clipped.rfind(" ")
    if last_space >= max_length * min_ratio:
        return clipped[:last_space] + suffix
    return clipped + suffix


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs into single spaces and strip the ends."""

    return _WHITESPACE_RE.sub(" ", text or "").strip()


def is_blank(text: str | None) -> bool:
    return not text or not text.strip()


def format_count(count: int, singular: str, plural: str | None = None) -> str:
    """Render ``"1 line"`` / ``"3 lines"`` style labels."""

    label = singular if count == 1 else (plural or f"{singular}s")
    return f"{count} {label}"
