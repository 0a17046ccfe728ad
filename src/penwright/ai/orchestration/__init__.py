"""Agent orchestration: prompt context, the tool loop and sessions."""

from .context import PromptContext, build_prompt_context
from .errors import TransportFailure, classify_transport_error, is_credential_error
from .loop import DEFAULT_MAX_ITERATIONS, AgentCallbacks, AgentLoop, AgentRunResult, RunStatus
from .session import AgentSession, SessionBusyError

__all__ = [
    "AgentCallbacks",
    "AgentLoop",
    "AgentRunResult",
    "AgentSession",
    "DEFAULT_MAX_ITERATIONS",
    "PromptContext",
    "RunStatus",
    "SessionBusyError",
    "TransportFailure",
    "build_prompt_context",
    "classify_transport_error",
    "is_credential_error",
]
