"""Document lifecycle events.

The pipeline and the burst orchestrator emit a sequence of events per
document. Events are recorded to JSONL so a generation can be inspected or
replayed later.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """High-level event categories."""

    SYSTEM = "system"
    LLM = "llm"
    STORAGE = "storage"
    ERROR = "error"


class ContentType(str, Enum):
    """Semantic types within event streams."""

    MESSAGE = "message"

    # Request phase
    SAFETY_VERDICT = "safety_verdict"
    TOPIC_CLASSIFIED = "topic_classified"
    SHELL_READY = "shell_ready"

    # Background phase
    BURST_STARTED = "burst_started"
    GROUP_STARTED = "group_started"
    SECTION_STARTED = "section_started"
    SECTION_PERSISTED = "section_persisted"
    SECTION_FAILED = "section_failed"
    DOCUMENT_COMPLETED = "document_completed"


class DocumentEvent(BaseModel):
    """A single event in the life of a document."""

    document_id: str
    seq: int = Field(ge=1)
    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    event_type: EventType
    content_type: ContentType

    data: str | dict | list | None = None
    metadata: dict[str, str | int | float | bool | None] = Field(default_factory=dict)
