"""Tool catalog advertised to the model.

Each :class:`ToolSpec` pairs a tool name with the description the model sees
and the JSON Schema its arguments must satisfy. The schemas are shared with
:mod:`penwright.ai.tools.schemas`, so the catalog and the validator cannot
drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .schemas import TOOL_INPUT_SCHEMAS, ToolKind

__all__ = ["TOOL_CATALOG", "ToolSpec", "get_tool_spec", "openai_tool_definitions"]


@dataclass(slots=True, frozen=True)
class ToolSpec:
    """Specification for a tool's interface.

    Attributes:
        name: Unique identifier for the tool.
        description: Human-readable description of what the tool does.
        parameters: JSON Schema for the tool's parameters.
    """

    name: str
    description: str
    parameters: Mapping[str, Any] = field(default_factory=dict)

    def to_openai_tool(self) -> dict[str, Any]:
        """Convert to OpenAI tool definition format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": dict(self.parameters) if self.parameters else {
                    "type": "object",
                    "properties": {},
                },
            },
        }


def _spec(kind: ToolKind, description: str) -> ToolSpec:
    return ToolSpec(name=kind.value, description=description, parameters=TOOL_INPUT_SCHEMAS[kind])


TOOL_CATALOG: tuple[ToolSpec, ...] = (
    _spec(
        ToolKind.READ_DOCUMENT,
        "Read the full content of the current document. Returns the document content, current "
        "writing stage, and word count. Use this to understand what the user is working on before "
        "making suggestions or updates.",
    ),
    _spec(
        ToolKind.UPDATE_DOCUMENT,
        "Update the document content. Can replace all content, insert at a position, or append to "
        "the end. Use this when drafting new sections, revising existing text, or making edits the "
        "user has approved.",
    ),
    _spec(
        ToolKind.UPDATE_CONCEPT,
        "Record or update the document concept - the core idea being developed. Use this when the "
        "user has articulated their title, main argument, target audience, or intended tone.",
    ),
    _spec(
        ToolKind.UPDATE_OUTLINE,
        "Create or update the document outline - the structural skeleton of the piece. Use this when "
        "helping organize ideas into sections with clear purposes and estimated lengths. Keep the id "
        "of a section when renaming it so changes can be tracked.",
    ),
    _spec(
        ToolKind.UPDATE_STAGE,
        "Progress the document to the next writing stage. Stages are: concept (clarifying "
        "argument/audience), outline (structuring), draft (writing), edits (revising), polish (final "
        "touches). Only advance when the current stage work is substantially complete.",
    ),
    _spec(
        ToolKind.ADD_EDIT_SUGGESTION,
        "Propose a specific edit to the document with before/after text. Use this in the edits or "
        "polish stages to suggest targeted improvements. The user can accept or reject each suggestion.",
    ),
)

_BY_NAME = {spec.name: spec for spec in TOOL_CATALOG}


def get_tool_spec(name: str) -> ToolSpec | None:
    return _BY_NAME.get(name)


def openai_tool_definitions() -> list[dict[str, Any]]:
    return [spec.to_openai_tool() for spec in TOOL_CATALOG]
