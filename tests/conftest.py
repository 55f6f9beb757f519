"""Shared test doubles: a scripted backend transport and a recording sleep."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable

import pytest

from bookloom.classification import KeywordTables, load_keyword_tables
from bookloom.config import Settings
from bookloom.llm.transport import BackendRequest, BackendResponse

Reply = str | int | BackendResponse | BaseException


class ScriptedTransport:
    """Transport returning canned replies in order, or computed by ``responder``.

    A ``str`` reply is a 200 with that text, an ``int`` is an error status and an
    exception instance is raised from ``send``.
    """

    def __init__(
        self,
        replies: list[Reply] | None = None,
        responder: Callable[[BackendRequest], Reply] | None = None,
    ) -> None:
        self._replies = list(replies or [])
        self._responder = responder
        self.requests: list[BackendRequest] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def send(self, request: BackendRequest) -> BackendResponse:
        self.requests.append(request)
        reply = self._responder(request) if self._responder is not None else self._replies.pop(0)
        await asyncio.sleep(0)
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, BackendResponse):
            return reply
        if isinstance(reply, int):
            return BackendResponse(status_code=reply, error=f"status {reply}")
        return BackendResponse(status_code=200, text=reply)


class RecordingSleep:
    """Awaitable sleep that records durations instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


@pytest.fixture
def tables() -> KeywordTables:
    return load_keyword_tables()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        openai_api_key="test-key",
        storage_backend="memory",
        storage_dir=tmp_path / "documents",
        artifacts_dir=tmp_path / "artifacts",
        burst_delay_s=3.0,
        generation_backoff_base_s=5.0,
    )
