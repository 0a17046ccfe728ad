"""Prompt templates for the writing agent.

The system prompt is rebuilt on every loop iteration from a
:class:`~penwright.ai.orchestration.context.PromptContext`: stage-specific
instructions first, then the locked concept and outline, a bounded preview
of the document, any user changes since the last response, outline/draft
conflicts, and finally the tool guidance.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from ..documents.models import ConceptSnapshot, DocumentStage, OutlineSection
from ..sync.conflicts import format_conflicts_for_prompt
from ..sync.outline_diff import format_changes_for_prompt
from ..utils.text import truncate_at_word

if TYPE_CHECKING:  # pragma: no cover
    from .orchestration.context import PromptContext

DOCUMENT_PREVIEW_CHARS = 2_000
PREVIEW_WORD_BREAK_RATIO = 0.8

SECTION_RULE = "\n---\n"

STAGE_DESCRIPTIONS: dict[DocumentStage, str] = {
    DocumentStage.CONCEPT: "Clarifying core argument and audience",
    DocumentStage.OUTLINE: "Structuring the piece into sections",
    DocumentStage.DRAFT: "Writing section by section",
    DocumentStage.EDITS: "Full-draft revision passes",
    DocumentStage.POLISH: "Final version complete",
}


def _core_section() -> str:
    """Role, tone, and editing principles shared by every stage."""
    return """# Writing Assistant

## Your Role

You help people write anything: essays, blog posts, memos, letters, journal entries, documentation.
Guide the writer through their process, preserve their voice, and help them sharpen their ideas.
Match your depth to the piece. A short email needs less ceremony than a long essay.

Editing philosophy: light touch, high standards. Fix what is broken, tighten what is loose, and ask
about what is unclear. Never overwrite the writer's voice.

## Tone

- Be warm but direct, and praise specifically rather than generically.
- Keep momentum. When you have enough to work with, act and offer to adjust afterwards.
- Trust the writer's instincts, especially when they deviate from the plan.

## Editing Conventions

When showing edits in your reply use ~~strikethrough~~ for deletions, **bold** for additions, and
[bracketed comments] for questions. Never add ideas the writer did not express."""


def _concept_stage() -> str:
    return """## Current Phase: CONCEPT

Help the writer discover what they are really trying to say. Ask at most one or two questions
before proposing something concrete. When the direction is clear, propose a concept spec (working
title, core idea in one sentence, audience, tone), save it with update_concept, and move on to the
outline with update_stage."""


def _outline_stage() -> str:
    return """## Current Phase: OUTLINE

Turn the concept into a structure that fits the piece: a sequence of sections for essays, purpose /
background / recommendation for memos, a few light prompts for personal writing. Make every change
the writer asks for (add, remove, reorder, rename). When the structure is solid, save it with
update_outline, keeping existing section ids for sections that survive, and present the first
section to write."""


def _draft_stage() -> str:
    return """## Current Phase: DRAFTING

Work through the outline one section at a time: present the section's purpose, receive the writer's
text, return it with light edits, and once they approve apply it with update_document. If they ask
you to write a section yourself, do it in a voice consistent with what they have written so far.
When the draft is complete, use update_stage to move to edits."""


def _edits_stage() -> str:
    return """## Current Phase: EDITING

Run revision passes over the full draft: coherence (flow and transitions), style (cut filler,
strengthen verbs), critical read (unsupported claims, missing pieces) and strengths (what is
working). If the writer does not pick one, run them together. If they paste a revision, treat it as
the new source of truth. When they are satisfied, use update_stage to move to polish."""


def _polish_stage() -> str:
    return """## Current Phase: FINAL POLISH

Check that the title delivers on its promise, the opening pulls the reader in, and the ending lands.
Present the clean final version with its word count and an estimated reading time. Return to editing
if the writer wants more changes."""


_STAGE_SECTIONS = {
    DocumentStage.CONCEPT: _concept_stage,
    DocumentStage.OUTLINE: _outline_stage,
    DocumentStage.DRAFT: _draft_stage,
    DocumentStage.EDITS: _edits_stage,
    DocumentStage.POLISH: _polish_stage,
}


def stage_prompt(stage: DocumentStage) -> str:
    """Return the base system prompt for *stage*."""
    return f"{_core_section()}\n{SECTION_RULE}\n{_STAGE_SECTIONS[stage]()}"


def tool_guidance() -> str:
    return """## Available Tools

1. **read_document**: current content, stage, and word count.
2. **update_document**: change the content with "replace" (all content), "insert" (at a character
   position), or "append" (at the end).
3. **update_concept**: record title, coreArgument, audience, and tone once the direction is clear.
4. **update_outline**: save the ordered sections (id, title, description, estimatedWords).
5. **update_stage**: move between concept, outline, draft, edits, and polish.
6. **add_edit_suggestion**: record a proposed change (scope, before, after, rationale).

Use tools without asking permission, and save concepts and outlines as soon as the writer confirms
them. The writer only sees your reply text, never tool calls, so always show proposed edits in your
reply before recording them with add_edit_suggestion."""


def format_concept(concept: ConceptSnapshot) -> str:
    return "\n".join(
        [
            "## Current Concept (Locked)",
            "",
            f"- **Title**: {concept.title}",
            f"- **Core Argument**: {concept.core_argument}",
            f"- **Audience**: {concept.audience}",
            f"- **Tone**: {concept.tone}",
        ]
    )


def format_outline(outline: Sequence[OutlineSection]) -> str:
    entries = []
    for index, section in enumerate(outline, start=1):
        words = f" (~{section.estimated_words} words)" if section.estimated_words else ""
        entries.append(f"{index}. **{section.title}**{words}\n   {section.description}")
    return "## Current Outline (Locked)\n\n" + "\n".join(entries)


def format_document_preview(content: str, word_count: int, *, limit: int = DOCUMENT_PREVIEW_CHARS) -> str:
    preview = truncate_at_word(content, limit, min_ratio=PREVIEW_WORD_BREAK_RATIO)
    word_info = f" ({word_count} words total)" if word_count else ""
    return f"## Document Preview{word_info}\n\n```\n{preview}\n```"


def build_system_prompt(context: "PromptContext") -> str:
    """Assemble the full system prompt for one model call."""

    parts = [stage_prompt(context.stage)]
    if context.concept is not None:
        parts.append(format_concept(context.concept))
    if context.outline:
        parts.append(format_outline(context.outline))
    if context.document_preview.strip():
        parts.append(
            format_document_preview(
                context.document_preview,
                context.word_count,
                limit=context.preview_chars,
            )
        )

    changes = format_changes_for_prompt(context.content_diff, context.outline_diff, context.stage_change)
    if changes:
        parts.append(
            changes.rstrip()
            + "\n\nAcknowledge these changes and understand the writer's intent before proceeding."
        )

    if context.conflicts is not None and context.conflicts.has_conflicts:
        parts.append(
            format_conflicts_for_prompt(context.conflicts)
            + "\n\n**Important**: Do not assume how to resolve these conflicts. Work with the writer to "
            "reconcile them together."
        )

    parts.append(tool_guidance())
    return SECTION_RULE.join(parts)


__all__ = [
    "DOCUMENT_PREVIEW_CHARS",
    "STAGE_DESCRIPTIONS",
    "build_system_prompt",
    "format_concept",
    "format_document_preview",
    "format_outline",
    "stage_prompt",
    "tool_guidance",
]
