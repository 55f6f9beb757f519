"""Tests for BackgroundSupervisor."""

from __future__ import annotations

import asyncio

import pytest

from bookloom.errors import InvalidInput
from bookloom.orchestrator.supervisor import BackgroundSupervisor, TaskState


async def _value(v, delay: float = 0.0):
    await asyncio.sleep(delay)
    return v


async def _boom():
    await asyncio.sleep(0)
    raise RuntimeError("boom")


def test_launch_and_wait_returns_result() -> None:
    async def main():
        supervisor = BackgroundSupervisor()
        task = supervisor.launch("doc-a", _value(42, 0.01))
        assert supervisor.status("doc-a") is TaskState.RUNNING
        assert supervisor.active_count == 1
        result = await supervisor.wait("doc-a")
        return task, result, supervisor.status("doc-a")

    task, result, state = asyncio.run(main())

    assert result == 42
    assert task.done()
    assert state is TaskState.COMPLETED


def test_unknown_document() -> None:
    async def main():
        supervisor = BackgroundSupervisor()
        return supervisor.status("nope"), await supervisor.wait("nope")

    assert asyncio.run(main()) == (TaskState.UNKNOWN, None)


def test_second_launch_for_running_document_is_rejected() -> None:
    async def main():
        supervisor = BackgroundSupervisor()
        supervisor.launch("doc-b", _value(1, 0.05))
        with pytest.raises(InvalidInput):
            supervisor.launch("doc-b", _value(2))
        await supervisor.wait("doc-b")
        # finished documents may be relaunched
        supervisor.launch("doc-b", _value(3))
        return await supervisor.wait("doc-b")

    assert asyncio.run(main()) == 3


def test_failed_task_reports_and_reraises() -> None:
    async def main():
        supervisor = BackgroundSupervisor()
        supervisor.launch("doc-c", _boom())
        with pytest.raises(RuntimeError):
            await supervisor.wait("doc-c")
        return supervisor.status("doc-c")

    assert asyncio.run(main()) is TaskState.FAILED


def test_wait_timeout_returns_none() -> None:
    async def main():
        supervisor = BackgroundSupervisor()
        supervisor.launch("doc-d", _value(1, 10))
        result = await supervisor.wait("doc-d", timeout=0.01)
        await supervisor.shutdown(timeout=0)
        return result, supervisor.status("doc-d")

    assert asyncio.run(main()) == (None, TaskState.CANCELLED)


def test_shutdown_lets_quick_tasks_finish() -> None:
    async def main():
        supervisor = BackgroundSupervisor()
        supervisor.launch("fast", _value("done", 0.01))
        supervisor.launch("slow", _value("never", 10))
        await supervisor.shutdown(timeout=0.5)
        return supervisor.status("fast"), supervisor.status("slow"), supervisor.active_count

    assert asyncio.run(main()) == (TaskState.COMPLETED, TaskState.CANCELLED, 0)


def test_finished_tasks_are_pruned() -> None:
    async def main():
        supervisor = BackgroundSupervisor(max_finished=2)
        for i in range(5):
            supervisor.launch(f"doc-{i}", _value(i))
            await supervisor.wait(f"doc-{i}")
        supervisor.launch("doc-last", _value("x"))
        await supervisor.wait("doc-last")
        return [supervisor.status(f"doc-{i}") for i in range(5)]

    states = asyncio.run(main())

    assert states[:3] == [TaskState.UNKNOWN] * 3
    assert states[3:] == [TaskState.COMPLETED] * 2
