"""Input schemas for the agent tools and their typed command payloads.

Raw tool input arrives from the model as a loosely-typed mapping. It is
validated against a JSON Schema (``jsonschema.Draft7Validator``) and a few
cross-field rules, then converted into one of the frozen command dataclasses
that make up :data:`ToolCommand`. Nothing touches the document until this
conversion succeeds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Union

from jsonschema import Draft7Validator

from ...documents.models import DocumentStage, OutlineSection
from .errors import ToolValidationError, UnknownToolError

__all__ = [
    "AddEditSuggestion",
    "DocumentOperation",
    "ReadDocument",
    "TOOL_INPUT_SCHEMAS",
    "ToolCommand",
    "ToolKind",
    "UpdateConcept",
    "UpdateDocument",
    "UpdateOutline",
    "UpdateStage",
    "parse_tool_input",
    "validate_tool_input",
]

MAX_SCHEMA_ERRORS = 10


class ToolKind(str, Enum):
    """Closed set of tools the agent may call."""

    READ_DOCUMENT = "read_document"
    UPDATE_DOCUMENT = "update_document"
    UPDATE_CONCEPT = "update_concept"
    UPDATE_OUTLINE = "update_outline"
    UPDATE_STAGE = "update_stage"
    ADD_EDIT_SUGGESTION = "add_edit_suggestion"

    @classmethod
    def lookup(cls, name: str) -> "ToolKind":
        try:
            return cls(name)
        except ValueError:
            raise UnknownToolError(tool_name=name) from None


class DocumentOperation(str, Enum):
    REPLACE = "replace"
    INSERT = "insert"
    APPEND = "append"


# ---------------------------------------------------------------------------
# JSON Schemas
# ---------------------------------------------------------------------------
_NON_EMPTY_STRING = {"type": "string", "minLength": 1}
_NON_NEGATIVE_INT = {"type": "integer", "minimum": 0}

_SECTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {**_NON_EMPTY_STRING, "description": "Unique identifier for this section"},
        "title": {**_NON_EMPTY_STRING, "description": "Section heading or name"},
        "description": {"type": "string", "description": "What this section covers and its purpose"},
        "estimatedWords": {
            **_NON_NEGATIVE_INT,
            "description": "Approximate word count target for this section",
        },
    },
    "required": ["id", "title", "description"],
    "additionalProperties": False,
}

TOOL_INPUT_SCHEMAS: dict[ToolKind, dict[str, Any]] = {
    ToolKind.READ_DOCUMENT: {
        "type": "object",
        "properties": {},
        "additionalProperties": False,
    },
    ToolKind.UPDATE_DOCUMENT: {
        "type": "object",
        "properties": {
            "operation": {
                "type": "string",
                "enum": [operation.value for operation in DocumentOperation],
                "description": (
                    'How to update the document: "replace" replaces all content, '
                    '"insert" adds at a specific position, "append" adds to the end'
                ),
            },
            "content": {"type": "string", "description": "The text content to write to the document"},
            "position": {
                **_NON_NEGATIVE_INT,
                "description": 'Character position for insert (0-based). Only required when operation is "insert"',
            },
        },
        "required": ["operation", "content"],
        "additionalProperties": False,
    },
    ToolKind.UPDATE_CONCEPT: {
        "type": "object",
        "properties": {
            "title": {**_NON_EMPTY_STRING, "description": "Working title for the piece"},
            "coreArgument": {**_NON_EMPTY_STRING, "description": "The main thesis or central idea of the piece"},
            "audience": {**_NON_EMPTY_STRING, "description": "Description of the intended readers"},
            "tone": {
                **_NON_EMPTY_STRING,
                "description": 'The voice and style (e.g., "casual and conversational", "formal and academic")',
            },
        },
        "required": ["title", "coreArgument", "audience", "tone"],
        "additionalProperties": False,
    },
    ToolKind.UPDATE_OUTLINE: {
        "type": "object",
        "properties": {
            "sections": {
                "type": "array",
                "description": "Array of outline sections in order",
                "items": _SECTION_SCHEMA,
                "minItems": 1,
            },
        },
        "required": ["sections"],
        "additionalProperties": False,
    },
    ToolKind.UPDATE_STAGE: {
        "type": "object",
        "properties": {
            "stage": {
                "type": "string",
                "enum": [stage.value for stage in DocumentStage],
                "description": "The stage to set the document to",
            },
        },
        "required": ["stage"],
        "additionalProperties": False,
    },
    ToolKind.ADD_EDIT_SUGGESTION: {
        "type": "object",
        "properties": {
            "scope": {
                **_NON_EMPTY_STRING,
                "description": 'What part of the document this affects (e.g., "introduction", "conclusion")',
            },
            "before": {"type": "string", "description": "The original text being edited"},
            "after": {"type": "string", "description": "The suggested replacement text"},
            "rationale": {"type": "string", "description": "Why this change improves the writing"},
        },
        "required": ["scope", "before", "after"],
        "additionalProperties": False,
    },
}

_VALIDATORS = {kind: Draft7Validator(schema) for kind, schema in TOOL_INPUT_SCHEMAS.items()}


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class ReadDocument:
    pass


@dataclass(slots=True, frozen=True)
class UpdateDocument:
    operation: DocumentOperation
    content: str
    position: int | None = None


@dataclass(slots=True, frozen=True)
class UpdateConcept:
    title: str
    core_argument: str
    audience: str
    tone: str


@dataclass(slots=True, frozen=True)
class UpdateOutline:
    sections: tuple[OutlineSection, ...]


@dataclass(slots=True, frozen=True)
class UpdateStage:
    stage: DocumentStage


@dataclass(slots=True, frozen=True)
class AddEditSuggestion:
    scope: str
    before: str
    after: str
    rationale: str | None = None


ToolCommand = Union[ReadDocument, UpdateDocument, UpdateConcept, UpdateOutline, UpdateStage, AddEditSuggestion]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def validate_tool_input(kind: ToolKind, payload: Any) -> list[str]:
    """Return human-readable problems with *payload*; empty when it is valid."""

    if not isinstance(payload, Mapping):
        return ["input must be a JSON object"]

    problems: list[str] = []
    for issue in sorted(_VALIDATORS[kind].iter_errors(dict(payload)), key=lambda error: [str(part) for part in error.path]):
        path = _format_schema_path(issue.absolute_path)
        problems.append(f"{path}: {issue.message}" if path else issue.message)
        if len(problems) >= MAX_SCHEMA_ERRORS:
            problems.append("too many validation errors; stopping early")
            return problems

    if problems:
        return problems

    if kind is ToolKind.UPDATE_DOCUMENT and payload.get("operation") == DocumentOperation.INSERT.value:
        if payload.get("position") is None:
            problems.append("position: Position is required for insert operation")
    if kind is ToolKind.UPDATE_OUTLINE:
        ids = [section["id"] for section in payload["sections"]]
        duplicates = sorted({section_id for section_id in ids if ids.count(section_id) > 1})
        if duplicates:
            problems.append(f"sections: duplicate section ids {', '.join(duplicates)}")
    return problems


def parse_tool_input(name: str, payload: Any) -> ToolCommand:
    """Validate *payload* for tool *name* and return its typed command.

    Raises:
        UnknownToolError: *name* is not in the catalog.
        ToolValidationError: *payload* violates the tool's schema or rules.
    """

    kind = ToolKind.lookup(name)
    problems = validate_tool_input(kind, payload)
    if problems:
        raise ToolValidationError.for_tool(kind.value, problems)
    return _build_command(kind, payload)


def _build_command(kind: ToolKind, payload: Mapping[str, Any]) -> ToolCommand:
    if kind is ToolKind.READ_DOCUMENT:
        return ReadDocument()
    if kind is ToolKind.UPDATE_DOCUMENT:
        position = payload.get("position")
        return UpdateDocument(
            operation=DocumentOperation(payload["operation"]),
            content=payload["content"],
            position=int(position) if position is not None else None,
        )
    if kind is ToolKind.UPDATE_CONCEPT:
        return UpdateConcept(
            title=payload["title"],
            core_argument=payload["coreArgument"],
            audience=payload["audience"],
            tone=payload["tone"],
        )
    if kind is ToolKind.UPDATE_OUTLINE:
        return UpdateOutline(sections=tuple(_build_sections(payload["sections"])))
    if kind is ToolKind.UPDATE_STAGE:
        return UpdateStage(stage=DocumentStage(payload["stage"]))
    return AddEditSuggestion(
        scope=payload["scope"],
        before=payload["before"],
        after=payload["after"],
        rationale=payload.get("rationale"),
    )


def _build_sections(entries: Iterable[Mapping[str, Any]]) -> Iterable[OutlineSection]:
    for entry in entries:
        estimate = entry.get("estimatedWords")
        yield OutlineSection(
            id=entry["id"],
            title=entry["title"],
            description=entry["description"],
            estimated_words=int(estimate) if estimate is not None else None,
        )


def _format_schema_path(path: Iterable[Any]) -> str:
    parts: list[str] = []
    for element in path:
        if isinstance(element, int):
            parts.append(f"[{element}]")
        elif parts:
            parts.append(f".{element}")
        else:
            parts.append(str(element))
    return "".join(parts)
