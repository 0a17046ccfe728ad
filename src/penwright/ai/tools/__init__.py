"""Agent tool catalog, input validation, and execution."""

from .definitions import TOOL_CATALOG, ToolSpec, get_tool_spec, openai_tool_definitions
from .errors import (
    DocumentNotLoadedError,
    ErrorCode,
    InternalToolError,
    ToolError,
    ToolValidationError,
    UnknownToolError,
)
from .executor import ToolExecutor
from .schemas import ToolCommand, ToolKind, parse_tool_input, validate_tool_input

__all__ = [
    "DocumentNotLoadedError",
    "ErrorCode",
    "InternalToolError",
    "TOOL_CATALOG",
    "ToolCommand",
    "ToolError",
    "ToolExecutor",
    "ToolKind",
    "ToolSpec",
    "ToolValidationError",
    "UnknownToolError",
    "get_tool_spec",
    "openai_tool_definitions",
    "parse_tool_input",
    "validate_tool_input",
]
