"""Section tasks and burst plans."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class SectionStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    PERSISTED = "persisted"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (SectionStatus.PERSISTED, SectionStatus.FAILED)


_ALLOWED_TRANSITIONS: dict[SectionStatus, frozenset[SectionStatus]] = {
    SectionStatus.PENDING: frozenset({SectionStatus.IN_PROGRESS}),
    SectionStatus.IN_PROGRESS: frozenset({SectionStatus.PERSISTED, SectionStatus.FAILED}),
    SectionStatus.PERSISTED: frozenset(),
    SectionStatus.FAILED: frozenset(),
}


@dataclass
class SectionTask:
    """In-flight state of one section, owned by the burst orchestrator."""

    index: int
    title: str
    image_hint: str = ""
    status: SectionStatus = SectionStatus.PENDING
    content: str | None = None
    error: str | None = None
    history: list[SectionStatus] = field(default_factory=lambda: [SectionStatus.PENDING])

    def advance(self, status: SectionStatus) -> None:
        """Move to ``status``; transitions are monotonic and never revert."""

        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise ValueError(f"section {self.index}: illegal transition {self.status.value} -> {status.value}")
        self.status = status
        self.history.append(status)


@dataclass(frozen=True)
class BurstPlan:
    """Ordered groups of section indices. Groups run in order, members concurrently."""

    groups: tuple[tuple[int, ...], ...]

    def indices(self) -> list[int]:
        return [i for group in self.groups for i in group]

    def __len__(self) -> int:
        return len(self.groups)


class SectionRecord(BaseModel):
    """Persisted state of a section as seen by downstream readers."""

    index: int = Field(ge=1)
    title: str = ""
    status: SectionStatus = SectionStatus.PENDING
    content: str | None = None
    image_hint: str = ""
    error: str | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
