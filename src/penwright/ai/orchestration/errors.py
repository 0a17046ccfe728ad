"""Classification of model transport failures."""

from __future__ import annotations

from dataclasses import dataclass

from openai import AuthenticationError, PermissionDeniedError

__all__ = ["CREDENTIAL_PHRASES", "TransportFailure", "classify_transport_error", "is_credential_error"]

CREDENTIAL_PHRASES: tuple[str, ...] = (
    "no api key",
    "invalid api key",
    "api key",
    "unauthorized",
    "authentication",
    "401",
)


def is_credential_error(error: BaseException | str) -> bool:
    """Heuristically decide whether *error* means the credentials are missing or rejected."""

    if isinstance(error, (AuthenticationError, PermissionDeniedError)):
        return True
    message = str(error).lower()
    return any(phrase in message for phrase in CREDENTIAL_PHRASES)


@dataclass(slots=True, frozen=True)
class TransportFailure:
    """A transport error reduced to what the caller needs to report it."""

    message: str
    credential_error: bool
    exception_type: str

    def __str__(self) -> str:
        return self.message


def classify_transport_error(exc: BaseException) -> TransportFailure:
    message = str(exc) or type(exc).__name__
    return TransportFailure(
        message=message,
        credential_error=is_credential_error(exc),
        exception_type=type(exc).__name__,
    )
