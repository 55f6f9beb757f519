"""Redis-backed gateway for multi-instance deployments.

Layout per document:
    ``{prefix}:doc:{id}:shell``     JSON string
    ``{prefix}:doc:{id}:sections``  hash of section index -> JSON record
"""

from __future__ import annotations

import asyncio

import redis
import redis.asyncio as aioredis
from pydantic_core import PydanticSerializationError

from bookloom.errors import PersistenceError
from bookloom.models.document import Document
from bookloom.models.section import SectionRecord, SectionStatus
from bookloom.models.shell import DocumentShell
from bookloom.storage.base import PersistenceGateway, merge_section_content, merge_section_status, validate_document_id


class RedisGateway(PersistenceGateway):
    """Gateway storing shells and sections in Redis."""

    def __init__(
        self,
        redis_url: str,
        key_prefix: str = "bookloom",
        *,
        ttl_seconds: int | None = 60 * 60 * 24 * 7,
        client: aioredis.Redis | None = None,
    ) -> None:
        self._client = client or aioredis.Redis.from_url(redis_url, decode_responses=True)
        self._prefix = key_prefix
        self._ttl_seconds = ttl_seconds
        self._locks: dict[str, asyncio.Lock] = {}

    def _shell_key(self, document_id: str) -> str:
        return f"{self._prefix}:doc:{document_id}:shell"

    def _sections_key(self, document_id: str) -> str:
        return f"{self._prefix}:doc:{document_id}:sections"

    def _lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def _expire(self, key: str) -> None:
        if self._ttl_seconds:
            await self._client.expire(key, self._ttl_seconds)

    async def upsert_shell(self, document_id: str, shell: DocumentShell) -> None:
        validate_document_id(document_id)
        key = self._shell_key(document_id)
        try:
            payload = shell.model_dump_json()
            async with self._lock(key):
                if await self._client.get(key) == payload:
                    return
                await self._client.set(key, payload)
                await self._expire(key)
        except (redis.RedisError, UnicodeError, PydanticSerializationError) as e:
            raise PersistenceError(f"redis upsert_shell failed: {e}") from e

    async def _write_section(self, document_id: str, index: int, merge) -> None:
        validate_document_id(document_id)
        key = self._sections_key(document_id)
        field = str(index)
        try:
            async with self._lock(f"{key}:{field}"):
                raw = await self._client.hget(key, field)
                existing = SectionRecord.model_validate_json(raw) if raw else None
                record = merge(existing)
                if record is None:
                    return
                await self._client.hset(key, field, record.model_dump_json())
                await self._expire(key)
        except (redis.RedisError, UnicodeError, PydanticSerializationError) as e:
            raise PersistenceError(f"redis section write failed: {e}") from e

    async def upsert_section(
        self,
        document_id: str,
        index: int,
        content: str,
        *,
        title: str = "",
        image_hint: str = "",
    ) -> None:
        await self._write_section(
            document_id,
            index,
            lambda existing: merge_section_content(existing, index, content, title=title, image_hint=image_hint),
        )

    async def mark_section(
        self,
        document_id: str,
        index: int,
        status: SectionStatus,
        *,
        title: str = "",
        error: str | None = None,
    ) -> None:
        await self._write_section(
            document_id,
            index,
            lambda existing: merge_section_status(existing, index, status, title=title, error=error),
        )

    async def get_document(self, document_id: str) -> Document | None:
        validate_document_id(document_id)
        try:
            shell_raw = await self._client.get(self._shell_key(document_id))
            sections_raw = await self._client.hgetall(self._sections_key(document_id))
        except redis.RedisError as e:
            raise PersistenceError(f"redis read failed: {e}") from e

        if shell_raw is None and not sections_raw:
            return None
        sections = {int(k): SectionRecord.model_validate_json(v) for k, v in sections_raw.items()}
        shell = DocumentShell.model_validate_json(shell_raw) if shell_raw else None
        return Document(document_id=document_id, shell=shell, sections=sections)

    async def close(self) -> None:
        await self._client.aclose()
