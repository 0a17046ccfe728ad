"""Service layer helpers (settings, telemetry)."""

from . import telemetry
from .settings import Settings, SettingsStore, redact_secret

__all__ = [
    "Settings",
    "SettingsStore",
    "redact_secret",
    "telemetry",
]
