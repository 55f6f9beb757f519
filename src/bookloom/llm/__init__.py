"""Generation backend access."""

from __future__ import annotations

from bookloom.llm.client import GenerationClient, GenerationOutcome, PromptPayload, classify_status
from bookloom.llm.transport import (
    BackendRequest,
    BackendResponse,
    ChatMessage,
    GeminiTransport,
    GenerationTransport,
    OpenAITransport,
    TransportTimeout,
    get_transport,
)

__all__ = [
    "BackendRequest",
    "BackendResponse",
    "ChatMessage",
    "GeminiTransport",
    "GenerationClient",
    "GenerationOutcome",
    "GenerationTransport",
    "OpenAITransport",
    "PromptPayload",
    "TransportTimeout",
    "classify_status",
    "get_transport",
]
