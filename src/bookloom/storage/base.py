"""Persistence gateway interface.

The gateway is the only durable store. Writes are keyed by
``(document_id, index)``, may arrive concurrently for different indices of
the same document, and are idempotent: repeating an identical write leaves the
stored state untouched and still succeeds.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

from bookloom.errors import PersistenceError
from bookloom.models.document import Document
from bookloom.models.section import SectionRecord, SectionStatus
from bookloom.models.shell import DocumentShell

_DOCUMENT_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def validate_document_id(document_id: str) -> str:
    if not _DOCUMENT_ID_RE.match(document_id or ""):
        raise PersistenceError(f"invalid document id: {document_id!r}", user_message="Unknown document.")
    return document_id


class PersistenceGateway(ABC):
    """Protocol for document stores."""

    @abstractmethod
    async def upsert_shell(self, document_id: str, shell: DocumentShell) -> None:
        """Create or replace the shell of a document."""

    @abstractmethod
    async def upsert_section(
        self,
        document_id: str,
        index: int,
        content: str,
        *,
        title: str = "",
        image_hint: str = "",
    ) -> None:
        """Store section content and mark the section persisted."""

    @abstractmethod
    async def mark_section(
        self,
        document_id: str,
        index: int,
        status: SectionStatus,
        *,
        title: str = "",
        error: str | None = None,
    ) -> None:
        """Record a non-content status change (pending, in progress, failed)."""

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None:
        """Read the current document, gaps included. ``None`` if unknown."""

    async def close(self) -> None:
        """Release connections. No-op by default."""


def merge_section_content(
    existing: SectionRecord | None,
    index: int,
    content: str,
    *,
    title: str,
    image_hint: str,
) -> SectionRecord | None:
    """Return the record to store, or ``None`` when the write changes nothing."""

    new_title = title or (existing.title if existing else "")
    new_hint = image_hint or (existing.image_hint if existing else "")
    if (
        existing is not None
        and existing.status is SectionStatus.PERSISTED
        and existing.content == content
        and existing.title == new_title
        and existing.image_hint == new_hint
    ):
        return None
    return SectionRecord(
        index=index,
        title=new_title,
        status=SectionStatus.PERSISTED,
        content=content,
        image_hint=new_hint,
        error=None,
    )


def merge_section_status(
    existing: SectionRecord | None,
    index: int,
    status: SectionStatus,
    *,
    title: str,
    error: str | None,
) -> SectionRecord | None:
    """Return the record to store, or ``None`` when the write changes nothing."""

    if status is SectionStatus.PERSISTED:
        raise ValueError("use upsert_section to persist content")
    new_title = title or (existing.title if existing else "")
    if existing is not None and existing.status is status and existing.error == error and existing.title == new_title:
        return None
    return SectionRecord(
        index=index,
        title=new_title,
        status=status,
        content=existing.content if existing else None,
        image_hint=existing.image_hint if existing else "",
        error=error,
    )
