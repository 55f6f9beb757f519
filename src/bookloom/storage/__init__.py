"""Document persistence gateways."""

from __future__ import annotations

from bookloom.config import Settings
from bookloom.storage.base import PersistenceGateway, validate_document_id
from bookloom.storage.filesystem import FileGateway
from bookloom.storage.memory import InMemoryGateway
from bookloom.storage.redis_store import RedisGateway


def get_gateway(settings: Settings) -> PersistenceGateway:
    """Build the gateway selected by ``settings.storage_backend``."""

    if settings.storage_backend == "memory":
        return InMemoryGateway()
    if settings.storage_backend == "redis":
        return RedisGateway(settings.redis_url, settings.redis_key_prefix)
    return FileGateway(settings.storage_dir)


__all__ = [
    "FileGateway",
    "InMemoryGateway",
    "PersistenceGateway",
    "RedisGateway",
    "get_gateway",
    "validate_document_id",
]
