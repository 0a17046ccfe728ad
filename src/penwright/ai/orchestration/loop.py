"""Bounded tool-calling loop that drives one agent turn."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Sequence

from ...chat.message_model import ChatHistory, ChatMessage, ContentBlock, TextBlock
from ...services import telemetry
from ..ai_types import AssistantResponse, StopReason, ToolResult, TransportCallbacks
from ..prompts import DOCUMENT_PREVIEW_CHARS, build_system_prompt
from ..tools.definitions import TOOL_CATALOG, ToolSpec
from ..tools.executor import ToolExecutor
from .context import build_prompt_context
from .errors import TransportFailure, classify_transport_error, is_credential_error

if TYPE_CHECKING:  # pragma: no cover
    from .session import AgentSession

LOGGER = logging.getLogger(__name__)

__all__ = ["AgentCallbacks", "AgentLoop", "AgentRunResult", "RunStatus", "DEFAULT_MAX_ITERATIONS"]

DEFAULT_MAX_ITERATIONS = 10


class RunStatus(str, Enum):
    COMPLETED = "completed"
    MAX_ITERATIONS = "max_iterations"
    ERROR = "error"


@dataclass(slots=True)
class AgentCallbacks:
    """Hooks for the caller (usually a UI) while a turn runs."""

    on_error: Callable[[str, bool], None] | None = None
    on_chunk: Callable[[str], None] | None = None
    on_tool_results: Callable[[Sequence[ToolResult]], None] | None = None

    def error(self, message: str, credential_error: bool) -> None:
        if self.on_error is not None:
            self.on_error(message, credential_error)

    def chunk(self, text: str) -> None:
        if self.on_chunk is not None:
            self.on_chunk(text)

    def tool_results(self, results: Sequence[ToolResult]) -> None:
        if self.on_tool_results is not None:
            self.on_tool_results(results)


@dataclass(slots=True)
class AgentRunResult:
    status: RunStatus
    iterations: int
    response_text: str = ""
    tool_results: list[ToolResult] = field(default_factory=list)
    error: str | None = None
    credential_error: bool = False

    @property
    def ok(self) -> bool:
        return self.status is not RunStatus.ERROR


class AgentLoop:
    """Call the model, run the tools it asks for, and repeat until it stops.

    The iteration cap is the only termination guarantee: a model that keeps
    requesting tools is cut off after ``max_iterations`` calls.
    """

    def __init__(
        self,
        executor: ToolExecutor | None = None,
        *,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        preview_chars: int = DOCUMENT_PREVIEW_CHARS,
        tools: Sequence[ToolSpec] = TOOL_CATALOG,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self._executor = executor or ToolExecutor()
        self._max_iterations = max_iterations
        self._preview_chars = preview_chars
        self._tools = tuple(tools)

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    async def run(self, session: "AgentSession", callbacks: AgentCallbacks | None = None) -> AgentRunResult:
        callbacks = callbacks or AgentCallbacks()
        run_id = uuid.uuid4().hex
        history = session.history
        store = session.store
        iterations = 0
        status = RunStatus.MAX_ITERATIONS
        response_text = ""
        tool_results: list[ToolResult] = []
        failure: TransportFailure | None = None
        placeholder_id: str | None = None
        reported_errors: set[str] = set()
        started = time.perf_counter()

        telemetry.emit("agent_turn_started", {"run_id": run_id, "history_length": len(history)})
        try:
            while iterations < self._max_iterations:
                iterations += 1
                context = build_prompt_context(store, session.snapshots, preview_chars=self._preview_chars)
                system_prompt = build_system_prompt(context)

                placeholder = history.add_message(ChatMessage(role="assistant", content=""))
                placeholder_id = placeholder.id
                messages = history.to_api_messages(exclude_id=placeholder_id)
                LOGGER.debug(
                    "Agent iteration %s/%s (run=%s, messages=%s, user_changes=%s)",
                    iterations,
                    self._max_iterations,
                    run_id,
                    len(messages),
                    context.has_user_changes,
                )

                response = await session.transport.send_with_tools(
                    messages,
                    system_prompt,
                    self._tools,
                    self._transport_callbacks(history, placeholder_id, callbacks, reported_errors),
                )
                history.update_message(placeholder_id, _final_content(response))
                response_text = response.text

                if not response.tool_uses or response.stop_reason is StopReason.END_TURN:
                    status = RunStatus.COMPLETED
                    break

                results = await self._executor.execute_all(response.tool_uses, store)
                history.add_tool_results(result.to_block() for result in results)
                tool_results.extend(results)
                callbacks.tool_results(results)
                placeholder_id = None
            else:
                LOGGER.warning("Agent turn %s stopped after reaching the iteration cap (%s)", run_id, self._max_iterations)
        except Exception as exc:
            failure = classify_transport_error(exc)
            status = RunStatus.ERROR
            LOGGER.warning("Agent turn %s failed: %s", run_id, failure.message, exc_info=True)
            if failure.message not in reported_errors:
                callbacks.error(failure.message, failure.credential_error)
            if placeholder_id is not None:
                message = history.get(placeholder_id)
                if message is not None and message.is_empty():
                    history.remove_message(placeholder_id)
        finally:
            session.snapshots.snapshot_now(store)
            telemetry.emit(
                "agent_turn_finished",
                {
                    "run_id": run_id,
                    "status": status.value,
                    "iterations": iterations,
                    "tool_calls": len(tool_results),
                    "duration_ms": round((time.perf_counter() - started) * 1000, 3),
                },
            )

        return AgentRunResult(
            status=status,
            iterations=iterations,
            response_text=response_text,
            tool_results=tool_results,
            error=failure.message if failure else None,
            credential_error=failure.credential_error if failure else False,
        )

    def _transport_callbacks(
        self,
        history: ChatHistory,
        placeholder_id: str,
        callbacks: AgentCallbacks,
        reported_errors: set[str],
    ) -> TransportCallbacks:
        def _on_chunk(text: str) -> None:
            history.append_text(placeholder_id, text)
            callbacks.chunk(text)

        def _on_error(message: str) -> None:
            LOGGER.warning("Transport reported error: %s", message)
            reported_errors.add(message)
            callbacks.error(message, is_credential_error(message))

        return TransportCallbacks(on_chunk=_on_chunk, on_error=_on_error)


def _final_content(response: AssistantResponse) -> str | list[ContentBlock]:
    if not response.tool_uses:
        return response.text
    blocks: list[ContentBlock] = []
    if response.text.strip():
        blocks.append(TextBlock(response.text))
    blocks.extend(invocation.to_block() for invocation in response.tool_uses)
    return blocks
