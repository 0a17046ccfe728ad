"""Tool executor: validates model tool calls and applies them to the document store.

:meth:`ToolExecutor.execute` never raises. Validation problems, state
problems and unexpected exceptions all come back as ``ToolResult`` objects
with ``is_error=True`` so the conversation can continue.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

from ...chat.message_model import format_tool_payload
from ...documents.models import DocumentStage
from ...documents.store import DocumentStore, NoDocumentLoaded
from ...services import telemetry
from ...utils.text import count_words
from ..ai_types import ToolInvocation, ToolResult
from .errors import DocumentNotLoadedError, InternalToolError, ToolError
from .schemas import (
    AddEditSuggestion,
    DocumentOperation,
    ReadDocument,
    ToolCommand,
    UpdateConcept,
    UpdateDocument,
    UpdateOutline,
    UpdateStage,
    parse_tool_input,
)

__all__ = ["ToolExecutor"]

LOGGER = logging.getLogger(__name__)


class ToolExecutor:
    """Runs validated tool commands against a :class:`DocumentStore`."""

    def __init__(self, *, log_arguments: bool = False) -> None:
        self._log_arguments = log_arguments

    async def execute(self, invocation: ToolInvocation, store: DocumentStore) -> ToolResult:
        """Execute a single tool call and wrap its outcome."""

        if self._log_arguments:
            LOGGER.debug("Executing tool %s (call_id=%s) with arguments: %s", invocation.name, invocation.id, invocation.input)
        else:
            LOGGER.debug("Executing tool %s (call_id=%s)", invocation.name, invocation.id)

        start_time = time.perf_counter()
        try:
            command = parse_tool_input(invocation.name, invocation.input)
            payload = self._apply(command, store)
        except ToolError as exc:
            LOGGER.debug("Tool %s rejected: %s", invocation.name, exc)
            result = ToolResult(invocation.id, format_tool_payload(exc.to_dict()), is_error=True)
        except Exception as exc:
            LOGGER.warning("Tool %s failed: %s", invocation.name, exc, exc_info=True)
            error = InternalToolError.from_exception(invocation.name, exc)
            result = ToolResult(invocation.id, format_tool_payload(error.to_dict()), is_error=True)
        else:
            result = ToolResult(invocation.id, format_tool_payload(payload))

        duration_ms = (time.perf_counter() - start_time) * 1000
        LOGGER.debug("Tool %s completed in %.1fms (error=%s)", invocation.name, duration_ms, result.is_error)
        telemetry.emit(
            "tool_executed",
            {
                "tool": invocation.name,
                "call_id": invocation.id,
                "is_error": result.is_error,
                "duration_ms": round(duration_ms, 3),
            },
        )
        return result

    async def execute_all(self, invocations: Sequence[ToolInvocation], store: DocumentStore) -> list[ToolResult]:
        """Execute every invocation concurrently; results keep the request order."""

        if not invocations:
            return []
        return list(await asyncio.gather(*(self.execute(invocation, store) for invocation in invocations)))

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    def _apply(self, command: ToolCommand, store: DocumentStore) -> dict[str, Any]:
        match command:
            case ReadDocument():
                return self._read(store)
            case UpdateDocument():
                return self._update_document(command, store)
            case UpdateConcept(title=title, core_argument=core_argument, audience=audience, tone=tone):
                with _require_document():
                    store.update_concept(title=title, core_argument=core_argument, audience=audience, tone=tone)
                return {
                    "success": True,
                    "concept": {"title": title, "coreArgument": core_argument, "audience": audience, "tone": tone},
                }
            case UpdateOutline(sections=sections):
                with _require_document():
                    outline = store.update_outline(sections)
                return {
                    "success": True,
                    "sectionCount": len(outline),
                    "sections": [{"id": section.id, "title": section.title} for section in outline],
                }
            case UpdateStage(stage=stage):
                with _require_document():
                    previous = store.update_stage(stage)
                return {"success": True, "previousStage": previous.value, "newStage": stage.value}
            case AddEditSuggestion(scope=scope, before=before, after=after, rationale=rationale):
                with _require_document():
                    suggestion = store.add_edit_suggestion(scope=scope, before=before, after=after, rationale=rationale)
                return {"success": True, "suggestionId": suggestion.id, "scope": suggestion.scope}
        raise TypeError(f"Unhandled tool command: {command!r}")

    def _read(self, store: DocumentStore) -> dict[str, Any]:
        content = store.content
        stage = store.stage or DocumentStage.CONCEPT
        return {
            "content": content,
            "stage": stage.value,
            "wordCount": count_words(content),
            "filename": store.filename,
        }

    def _update_document(self, command: UpdateDocument, store: DocumentStore) -> dict[str, Any]:
        current = store.content
        match command.operation:
            case DocumentOperation.REPLACE:
                updated = command.content
            case DocumentOperation.INSERT:
                position = max(0, min(command.position or 0, len(current)))
                updated = current[:position] + command.content + current[position:]
            case DocumentOperation.APPEND:
                updated = current + command.content
        with _require_document():
            store.update_content(updated)
        return {"success": True, "operation": command.operation.value, "wordCount": count_words(updated)}


@contextmanager
def _require_document() -> Iterator[None]:
    """Translate the store's missing-document signal into a tool state error."""

    try:
        yield
    except NoDocumentLoaded as exc:
        raise DocumentNotLoadedError() from exc
