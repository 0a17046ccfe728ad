"""Standardized error types for AI tools.

Every failure a tool can report is a :class:`ToolError` subclass with a
stable machine-readable code and consistent JSON serialization, so the model
always receives the same error shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence


# -----------------------------------------------------------------------------
# Error Code Constants
# -----------------------------------------------------------------------------

class ErrorCode:
    """Constants for error codes used in tool responses."""

    # Input errors
    VALIDATION_FAILED = "validation_failed"
    UNKNOWN_TOOL = "unknown_tool"

    # State errors
    DOCUMENT_NOT_LOADED = "document_not_loaded"

    # General errors
    INTERNAL_ERROR = "internal_error"


# -----------------------------------------------------------------------------
# Base Error Class
# -----------------------------------------------------------------------------

@dataclass
class ToolError(Exception):
    """Base exception class for all tool errors.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable error description.
        details: Additional structured error information.
        suggestion: Actionable guidance for recovery.
    """

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = ""

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary for JSON tool responses."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = dict(self.details)
        if self.suggestion:
            result["suggestion"] = self.suggestion
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# -----------------------------------------------------------------------------
# Input Errors
# -----------------------------------------------------------------------------

@dataclass
class ToolValidationError(ToolError):
    """Raised when tool input does not satisfy the tool's schema or rules."""

    error_code: str = field(default=ErrorCode.VALIDATION_FAILED)
    message: str = field(default="Tool input failed validation")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Fix the listed problems and call the tool again")

    tool: str | None = field(default=None)
    problems: Sequence[str] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.tool is not None:
            result["tool"] = self.tool
        if self.problems:
            result["problems"] = list(self.problems)
        return result

    @classmethod
    def for_tool(cls, tool: str, problems: Sequence[str]) -> "ToolValidationError":
        summary = "; ".join(problems) if problems else "invalid input"
        return cls(message=f"Invalid input for {tool}: {summary}", tool=tool, problems=tuple(problems))


@dataclass
class UnknownToolError(ToolError):
    """Raised when the model asks for a tool outside the catalog."""

    error_code: str = field(default=ErrorCode.UNKNOWN_TOOL)
    message: str = field(default="Unknown tool")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Call one of the tools listed in the catalog")

    tool_name: str | None = field(default=None)

    def __post_init__(self) -> None:
        if self.tool_name and self.message == "Unknown tool":
            self.message = f"Unknown tool: {self.tool_name}"
        super().__post_init__()

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.tool_name is not None:
            result["tool"] = self.tool_name
        return result


# -----------------------------------------------------------------------------
# State Errors
# -----------------------------------------------------------------------------

@dataclass
class DocumentNotLoadedError(ToolError):
    """Raised when a tool needs a document but none is open."""

    error_code: str = field(default=ErrorCode.DOCUMENT_NOT_LOADED)
    message: str = field(default="No document loaded")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Ask the user to open or create a document first")


# -----------------------------------------------------------------------------
# General Errors
# -----------------------------------------------------------------------------

@dataclass
class InternalToolError(ToolError):
    """Wraps an unexpected exception raised while a tool was running."""

    error_code: str = field(default=ErrorCode.INTERNAL_ERROR)
    message: str = field(default="Tool execution failed")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="")

    @classmethod
    def from_exception(cls, tool: str, exc: BaseException) -> "InternalToolError":
        return cls(
            message=f"{tool} failed: {exc}",
            details={"tool": tool, "exception": type(exc).__name__},
        )


__all__ = [
    "ErrorCode",
    "ToolError",
    "ToolValidationError",
    "UnknownToolError",
    "DocumentNotLoadedError",
    "InternalToolError",
]
