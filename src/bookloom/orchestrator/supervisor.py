"""Supervised background tasks, one per document."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Coroutine

from bookloom.errors import InvalidInput
from bookloom.logging import get_logger

logger = get_logger(__name__)


class TaskState(str, Enum):
    UNKNOWN = "unknown"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class BackgroundSupervisor:
    """Own the background task of every document so it can be observed and shut down."""

    def __init__(self, max_finished: int = 256) -> None:
        """Initialize the supervisor.

        Args:
            max_finished: Finished tasks kept for status queries before the oldest are dropped.
        """
        self._tasks: dict[str, asyncio.Task] = {}
        self._max_finished = max_finished

    def launch(self, document_id: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Start ``coro`` as the background task of ``document_id``.

        Raises:
            InvalidInput: A task for the same document is still running.
        """
        existing = self._tasks.get(document_id)
        if existing is not None and not existing.done():
            coro.close()
            raise InvalidInput(
                f"document {document_id} already has a running task",
                user_message="This book is still being written. Please wait for it to finish.",
            )

        task = asyncio.create_task(coro, name=f"burst:{document_id}")
        self._tasks[document_id] = task
        task.add_done_callback(lambda t: self._on_done(document_id, t))
        self._prune()
        logger.info("Background task launched", extra={"task": task.get_name()})
        return task

    def _on_done(self, document_id: str, task: asyncio.Task) -> None:
        if task.cancelled():
            logger.warning("Background task cancelled", extra={"task": task.get_name()})
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task failed",
                extra={"task": task.get_name(), "error": repr(exc)},
                exc_info=exc,
            )

    def _prune(self) -> None:
        finished = [doc_id for doc_id, t in self._tasks.items() if t.done()]
        for doc_id in finished[: max(0, len(finished) - self._max_finished)]:
            del self._tasks[doc_id]

    def status(self, document_id: str) -> TaskState:
        task = self._tasks.get(document_id)
        if task is None:
            return TaskState.UNKNOWN
        if not task.done():
            return TaskState.RUNNING
        if task.cancelled():
            return TaskState.CANCELLED
        if task.exception() is not None:
            return TaskState.FAILED
        return TaskState.COMPLETED

    async def wait(self, document_id: str, timeout: float | None = None) -> Any:
        """Wait for the task of ``document_id`` and return its result.

        Returns ``None`` if there is no such task, it was cancelled, or it is
        still running when ``timeout`` expires. A task that raised re-raises.
        """

        task = self._tasks.get(document_id)
        if task is None:
            return None
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if not done or task.cancelled():
            return None
        return task.result()

    @property
    def active_count(self) -> int:
        return len([t for t in self._tasks.values() if not t.done()])

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Give running tasks ``timeout`` seconds to finish, then cancel the rest."""

        pending = [t for t in self._tasks.values() if not t.done()]
        if not pending:
            return
        logger.info("Shutting down background tasks", extra={"pending": len(pending), "timeout_s": timeout})
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
