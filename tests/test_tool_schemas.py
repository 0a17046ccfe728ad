"""Tests for tool input validation and command parsing."""

from __future__ import annotations

import pytest

from penwright.ai.tools.definitions import TOOL_CATALOG, get_tool_spec, openai_tool_definitions
from penwright.ai.tools.errors import ErrorCode, ToolValidationError, UnknownToolError
from penwright.ai.tools.schemas import (
    DocumentOperation,
    ReadDocument,
    ToolKind,
    UpdateDocument,
    UpdateOutline,
    UpdateStage,
    parse_tool_input,
    validate_tool_input,
)
from penwright.documents.models import DocumentStage


def test_catalog_covers_every_tool_kind() -> None:
    assert [spec.name for spec in TOOL_CATALOG] == [kind.value for kind in ToolKind]
    assert get_tool_spec("read_document") is TOOL_CATALOG[0]
    assert get_tool_spec("nope") is None


def test_openai_definitions_use_function_format() -> None:
    definitions = openai_tool_definitions()

    assert definitions[0]["type"] == "function"
    assert definitions[1]["function"]["name"] == "update_document"
    assert definitions[1]["function"]["parameters"]["required"] == ["operation", "content"]


def test_read_document_accepts_empty_object() -> None:
    assert parse_tool_input("read_document", {}) == ReadDocument()


def test_non_mapping_input_is_rejected() -> None:
    assert validate_tool_input(ToolKind.READ_DOCUMENT, ["not", "a", "dict"]) == ["input must be a JSON object"]


def test_missing_required_field_is_reported() -> None:
    problems = validate_tool_input(ToolKind.UPDATE_DOCUMENT, {"operation": "append"})

    assert problems == ["'content' is a required property"]


def test_bad_enum_value_carries_its_path() -> None:
    problems = validate_tool_input(ToolKind.UPDATE_STAGE, {"stage": "publishing"})

    assert len(problems) == 1
    assert problems[0].startswith("stage: ")


def test_insert_requires_position() -> None:
    with pytest.raises(ToolValidationError) as excinfo:
        parse_tool_input("update_document", {"operation": "insert", "content": "x"})

    error = excinfo.value
    assert error.tool == "update_document"
    assert error.problems == ("position: Position is required for insert operation",)
    assert error.to_dict()["error"] == ErrorCode.VALIDATION_FAILED


def test_insert_with_position_parses() -> None:
    command = parse_tool_input("update_document", {"operation": "insert", "content": "x", "position": 3})

    assert command == UpdateDocument(operation=DocumentOperation.INSERT, content="x", position=3)


def test_negative_position_is_rejected() -> None:
    problems = validate_tool_input(ToolKind.UPDATE_DOCUMENT, {"operation": "insert", "content": "x", "position": -1})

    assert problems and problems[0].startswith("position: ")


def test_outline_sections_are_validated_per_item() -> None:
    problems = validate_tool_input(
        ToolKind.UPDATE_OUTLINE,
        {"sections": [{"id": "a", "title": "A", "description": ""}, {"id": "b", "title": "B"}]},
    )

    assert problems == ["sections[1]: 'description' is a required property"]


def test_outline_duplicate_ids_are_rejected() -> None:
    payload = {
        "sections": [
            {"id": "a", "title": "A", "description": ""},
            {"id": "a", "title": "Again", "description": ""},
        ]
    }

    assert validate_tool_input(ToolKind.UPDATE_OUTLINE, payload) == ["sections: duplicate section ids a"]


def test_outline_parses_into_sections() -> None:
    command = parse_tool_input(
        "update_outline",
        {"sections": [{"id": "intro", "title": "Intro", "description": "Hook", "estimatedWords": 150}]},
    )

    assert isinstance(command, UpdateOutline)
    assert command.sections[0].estimated_words == 150
    assert command.sections[0].description == "Hook"


def test_extra_properties_are_rejected() -> None:
    problems = validate_tool_input(ToolKind.UPDATE_STAGE, {"stage": "draft", "force": True})

    assert len(problems) == 1
    assert "force" in problems[0]


def test_stage_parses_into_enum() -> None:
    assert parse_tool_input("update_stage", {"stage": "edits"}) == UpdateStage(stage=DocumentStage.EDITS)


def test_unknown_tool() -> None:
    with pytest.raises(UnknownToolError) as excinfo:
        parse_tool_input("delete_everything", {})

    assert excinfo.value.message == "Unknown tool: delete_everything"
    assert excinfo.value.to_dict()["tool"] == "delete_everything"
