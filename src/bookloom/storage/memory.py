"""In-process gateway, used by tests and single-process development runs."""

from __future__ import annotations

import asyncio

from bookloom.models.document import Document
from bookloom.models.section import SectionStatus
from bookloom.models.shell import DocumentShell
from bookloom.storage.base import PersistenceGateway, merge_section_content, merge_section_status, validate_document_id


class InMemoryGateway(PersistenceGateway):
    """Dictionary-backed gateway with one lock per document."""

    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self.write_count = 0

    def _lock(self, document_id: str) -> asyncio.Lock:
        lock = self._locks.get(document_id)
        if lock is None:
            lock = self._locks[document_id] = asyncio.Lock()
        return lock

    def _document(self, document_id: str) -> Document:
        doc = self._documents.get(document_id)
        if doc is None:
            doc = self._documents[document_id] = Document(document_id=document_id)
        return doc

    async def upsert_shell(self, document_id: str, shell: DocumentShell) -> None:
        validate_document_id(document_id)
        async with self._lock(document_id):
            doc = self._document(document_id)
            if doc.shell != shell:
                doc.shell = shell.model_copy(deep=True)
                self.write_count += 1

    async def upsert_section(
        self,
        document_id: str,
        index: int,
        content: str,
        *,
        title: str = "",
        image_hint: str = "",
    ) -> None:
        validate_document_id(document_id)
        async with self._lock(document_id):
            doc = self._document(document_id)
            record = merge_section_content(doc.sections.get(index), index, content, title=title, image_hint=image_hint)
            if record is not None:
                doc.sections[index] = record
                self.write_count += 1

    async def mark_section(
        self,
        document_id: str,
        index: int,
        status: SectionStatus,
        *,
        title: str = "",
        error: str | None = None,
    ) -> None:
        validate_document_id(document_id)
        async with self._lock(document_id):
            doc = self._document(document_id)
            record = merge_section_status(doc.sections.get(index), index, status, title=title, error=error)
            if record is not None:
                doc.sections[index] = record
                self.write_count += 1

    async def get_document(self, document_id: str) -> Document | None:
        validate_document_id(document_id)
        doc = self._documents.get(document_id)
        return doc.model_copy(deep=True) if doc is not None else None
