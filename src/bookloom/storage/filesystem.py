"""File-backed gateway.

Each document is one JSON file under ``root``. Writes go through a temp file
and ``os.replace`` so a reader never sees a half-written document.
"""

from __future__ import annotations

import asyncio
import json
import os
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from bookloom.errors import PersistenceError
from bookloom.logging import get_logger
from bookloom.models.document import Document
from bookloom.models.section import SectionStatus
from bookloom.models.shell import DocumentShell
from bookloom.storage.base import PersistenceGateway, merge_section_content, merge_section_status, validate_document_id

logger = get_logger(__name__)


@dataclass(frozen=True)
class FileGatewayPaths:
    """Filesystem layout for a document store."""

    root: Path

    def document(self, document_id: str) -> Path:
        return self.root / f"{document_id}.json"


class FileGateway(PersistenceGateway):
    """One JSON file per document, updated read-modify-write under a per-document lock."""

    def __init__(self, root_dir: Path) -> None:
        self._paths = FileGatewayPaths(root=Path(root_dir))
        self._paths.root.mkdir(parents=True, exist_ok=True)
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def root(self) -> Path:
        return self._paths.root

    def _lock(self, document_id: str) -> asyncio.Lock:
        lock = self._locks.get(document_id)
        if lock is None:
            lock = self._locks[document_id] = asyncio.Lock()
        return lock

    def _read(self, document_id: str) -> Document | None:
        path = self._paths.document(document_id)
        if not path.exists():
            return None
        try:
            return Document.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeError, ValidationError) as e:
            raise PersistenceError(f"failed to read {path}: {e}") from e

    def _write(self, doc: Document) -> None:
        path = self._paths.document(doc.document_id)
        tmp = path.with_suffix(".json.tmp")
        try:
            tmp.write_text(json.dumps(doc.model_dump(mode="json"), ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp, path)
        except (OSError, UnicodeError) as e:
            raise PersistenceError(f"failed to write {path}: {e}") from e

    async def _update(self, document_id: str, mutate) -> None:
        """Apply ``mutate(doc) -> bool`` and write back only if it reports a change."""

        validate_document_id(document_id)
        async with self._lock(document_id):
            doc = await asyncio.to_thread(self._read, document_id)
            if doc is None:
                doc = Document(document_id=document_id)
            if mutate(doc):
                await asyncio.to_thread(self._write, doc)

    async def upsert_shell(self, document_id: str, shell: DocumentShell) -> None:
        def mutate(doc: Document) -> bool:
            if doc.shell == shell:
                return False
            doc.shell = shell
            return True

        await self._update(document_id, mutate)
        logger.debug("Stored shell", extra={"path": str(self._paths.document(document_id))})

    async def upsert_section(
        self,
        document_id: str,
        index: int,
        content: str,
        *,
        title: str = "",
        image_hint: str = "",
    ) -> None:
        def mutate(doc: Document) -> bool:
            record = merge_section_content(doc.sections.get(index), index, content, title=title, image_hint=image_hint)
            if record is None:
                return False
            doc.sections[index] = record
            return True

        await self._update(document_id, mutate)

    async def mark_section(
        self,
        document_id: str,
        index: int,
        status: SectionStatus,
        *,
        title: str = "",
        error: str | None = None,
    ) -> None:
        def mutate(doc: Document) -> bool:
            record = merge_section_status(doc.sections.get(index), index, status, title=title, error=error)
            if record is None:
                return False
            doc.sections[index] = record
            return True

        await self._update(document_id, mutate)

    async def get_document(self, document_id: str) -> Document | None:
        validate_document_id(document_id)
        return await asyncio.to_thread(self._read, document_id)
