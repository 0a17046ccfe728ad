"""AI client, transport, and tool wiring."""

from .client import AIClient, ClientSettings
from .transport import OpenAITransport

__all__ = ["AIClient", "ClientSettings", "OpenAITransport"]
