"""Staggered-burst background generation of the remaining sections.

Sections beyond the first are grouped into fixed-size ordered bursts. The
members of a burst run concurrently; bursts run strictly one after another,
separated by a fixed delay so peak load on the shared backend stays bounded.
Every section is persisted the moment it completes. A failed section is
recorded and logged, and never cancels its siblings or later bursts.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Sequence

from bookloom.errors import PersistenceError, SectionGenerationFailed
from bookloom.events import ContentType, EventType
from bookloom.llm.client import GenerationClient, PromptPayload
from bookloom.llm.transport import ChatMessage
from bookloom.logging import document_context, get_logger, section_context, set_step
from bookloom.models.section import BurstPlan, SectionStatus, SectionTask
from bookloom.models.shell import OutlineEntry
from bookloom.prompts import SECTION_SYSTEM_PROMPT, build_section_prompt
from bookloom.recording.file_recorder import FileEventRecorder
from bookloom.storage.base import PersistenceGateway
from bookloom.utils.ids import format_section_key
from bookloom.utils.text import find_image_marker, strip_code_fences

logger = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


def build_burst_plan(indices: Iterable[int], group_size: int) -> BurstPlan:
    """Group every index beyond 1 into ordered bursts of ``group_size``.

    A trailing burst shorter than ``group_size`` is merged into the one before
    it, so 2..10 with size 2 gives ``[[2, 3], [4, 5], [6, 7], [8, 9, 10]]``.
    """

    if group_size < 1:
        raise ValueError("group_size must be >= 1")
    ordered = sorted({i for i in indices if i > 1})
    groups = [ordered[i : i + group_size] for i in range(0, len(ordered), group_size)]
    if len(groups) > 1 and len(groups[-1]) < group_size:
        tail = groups.pop()
        groups[-1].extend(tail)
    return BurstPlan(groups=tuple(tuple(g) for g in groups))


@dataclass(frozen=True)
class GenerationParams:
    """Per-document inputs shared by every section prompt."""

    topic: str
    book_title: str
    language_name: str = "English"
    temperature: float = 0.8
    max_output_tokens: int = 8192


@dataclass
class BurstReport:
    """Terminal state of one orchestrator run."""

    document_id: str
    plan: BurstPlan
    tasks: dict[int, SectionTask] = field(default_factory=dict)
    delays: list[float] = field(default_factory=list)

    @property
    def persisted(self) -> list[int]:
        return sorted(i for i, t in self.tasks.items() if t.status is SectionStatus.PERSISTED)

    @property
    def failed(self) -> list[int]:
        return sorted(i for i, t in self.tasks.items() if t.status is SectionStatus.FAILED)

    def summary(self) -> dict[str, Any]:
        return {
            "document_id": self.document_id,
            "groups": [list(g) for g in self.plan.groups],
            "persisted": self.persisted,
            "failed": self.failed,
        }


class BurstOrchestrator:
    """Fill in every section of a document beyond the first."""

    def __init__(
        self,
        client: GenerationClient,
        gateway: PersistenceGateway,
        *,
        group_size: int = 2,
        delay_s: float = 3.0,
        sleep: SleepFn = asyncio.sleep,
        recorder: FileEventRecorder | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: Generation client; its retry policy applies to every section.
            gateway: Store receiving each section as soon as it completes.
            group_size: Sections per burst.
            delay_s: Pause between consecutive bursts (not after the last).
            sleep: Awaitable sleep, injectable for deterministic tests.
            recorder: Optional progress event recorder.
        """
        if group_size < 1:
            raise ValueError("group_size must be >= 1")
        self._client = client
        self._gateway = gateway
        self._group_size = group_size
        self._delay_s = delay_s
        self._sleep = sleep
        self._recorder = recorder

    def plan(self, outline: Sequence[OutlineEntry]) -> BurstPlan:
        return build_burst_plan((e.index for e in outline), self._group_size)

    async def run(self, document_id: str, outline: Sequence[OutlineEntry], params: GenerationParams) -> BurstReport:
        """Run every burst to completion and report the terminal state of each section."""

        plan = self.plan(outline)
        by_index = {e.index: e for e in outline}
        report = BurstReport(
            document_id=document_id,
            plan=plan,
            tasks={
                i: SectionTask(index=i, title=by_index[i].title, image_hint=by_index[i].image_hint)
                for i in plan.indices()
            },
        )

        with document_context(document_id=document_id, step="burst"):
            logger.info("Burst started", extra={"groups": len(plan), "sections": len(report.tasks)})
            await self._emit(document_id, EventType.SYSTEM, ContentType.BURST_STARTED, {"groups": [list(g) for g in plan.groups]})

            for n, group in enumerate(plan.groups):
                set_step(f"group:{n + 1}")
                await self._emit(document_id, EventType.SYSTEM, ContentType.GROUP_STARTED, list(group), group=n + 1)
                results = await asyncio.gather(
                    *(self._run_section(document_id, report.tasks[i], params) for i in group),
                    return_exceptions=True,
                )
                for index, result in zip(group, results):
                    if isinstance(result, BaseException):
                        # _run_section records its own failures; this is a bug guard.
                        logger.error("Section task raised", extra={"index": index, "error": repr(result)})

                if n < len(plan) - 1:
                    report.delays.append(self._delay_s)
                    await self._sleep(self._delay_s)

            set_step("burst")
            logger.info("Burst finished", extra={"persisted": report.persisted, "failed": report.failed})
            await self._emit(document_id, EventType.SYSTEM, ContentType.DOCUMENT_COMPLETED, report.summary())
        return report

    async def _run_section(self, document_id: str, task: SectionTask, params: GenerationParams) -> None:
        task.advance(SectionStatus.IN_PROGRESS)
        with section_context(task.index):
            try:
                await self._generate_section(document_id, task, params)
            except asyncio.CancelledError:
                await self._cancel(document_id, task)
                raise

    async def _generate_section(self, document_id: str, task: SectionTask, params: GenerationParams) -> None:
        key = format_section_key(document_id, task.index)
        await self._emit(document_id, EventType.LLM, ContentType.SECTION_STARTED, None, index=task.index, title=task.title)
        try:
            await self._gateway.mark_section(document_id, task.index, SectionStatus.IN_PROGRESS, title=task.title)
        except PersistenceError as e:
            logger.warning("Could not mark section in progress", extra={"section_key": key, "error": str(e)})

        payload = PromptPayload(
            messages=[
                ChatMessage(role="system", content=SECTION_SYSTEM_PROMPT),
                ChatMessage(
                    role="user",
                    content=build_section_prompt(
                        index=task.index,
                        title=task.title,
                        book_title=params.book_title,
                        topic=params.topic,
                        language_name=params.language_name,
                        image_hint=task.image_hint,
                    ),
                ),
            ],
            temperature=params.temperature,
        )
        try:
            outcome = await self._client.generate(payload, params.max_output_tokens)
            if not outcome.ok:
                raise SectionGenerationFailed(
                    f"generation failed ({outcome.failure.value}) after {outcome.attempts} attempt(s): {outcome.error}",
                    index=task.index,
                )
            content = strip_code_fences(outcome.text)
            if not content:
                raise SectionGenerationFailed("backend returned empty content", index=task.index)
            image_hint = find_image_marker(content) or task.image_hint
            try:
                await self._gateway.upsert_section(
                    document_id, task.index, content, title=task.title, image_hint=image_hint
                )
            except PersistenceError as e:
                raise SectionGenerationFailed(f"persist failed: {e}", index=task.index, cause=e) from e
        except SectionGenerationFailed as e:
            await self._fail(document_id, task, e)
            return
        except Exception as e:  # never let one section take down its burst
            logger.exception("Unexpected section error", extra={"section_key": key})
            await self._fail(document_id, task, SectionGenerationFailed(repr(e), index=task.index, cause=e))
            return

        task.content = content
        task.image_hint = image_hint
        task.advance(SectionStatus.PERSISTED)
        logger.info("Section persisted", extra={"section_key": key, "chars": len(content), "attempts": outcome.attempts})
        await self._emit(
            document_id,
            EventType.STORAGE,
            ContentType.SECTION_PERSISTED,
            None,
            index=task.index,
            chars=len(content),
            attempts=outcome.attempts,
        )

    async def _fail(self, document_id: str, task: SectionTask, error: SectionGenerationFailed) -> None:
        task.error = str(error)
        task.advance(SectionStatus.FAILED)
        logger.error("Section failed", extra={"section_key": format_section_key(document_id, task.index), "error": task.error})
        await self._emit(document_id, EventType.ERROR, ContentType.SECTION_FAILED, task.error, index=task.index)
        try:
            await self._gateway.mark_section(
                document_id, task.index, SectionStatus.FAILED, title=task.title, error=task.error
            )
        except PersistenceError as e:
            logger.warning("Could not record section failure", extra={"index": task.index, "error": str(e)})

    async def _cancel(self, document_id: str, task: SectionTask) -> None:
        """Record a section interrupted by shutdown as failed, so it never reads as live work."""

        if task.status is SectionStatus.PERSISTED:
            return
        if task.status is SectionStatus.IN_PROGRESS:
            task.error = "cancelled"
            task.advance(SectionStatus.FAILED)
            logger.warning("Section cancelled", extra={"section_key": format_section_key(document_id, task.index)})
        # A failure recorded in memory may not have reached the store yet; the write is idempotent.
        try:
            await asyncio.shield(
                self._gateway.mark_section(
                    document_id, task.index, SectionStatus.FAILED, title=task.title, error=task.error
                )
            )
        except PersistenceError as e:
            logger.warning("Could not record section cancellation", extra={"index": task.index, "error": str(e)})
        await self._emit(document_id, EventType.ERROR, ContentType.SECTION_FAILED, task.error, index=task.index)

    async def _emit(self, document_id: str, event_type: EventType, content_type: ContentType, data: Any, **metadata: Any) -> None:
        if self._recorder is None:
            return
        try:
            await self._recorder.aemit(document_id, event_type, content_type, data, **metadata)
        except OSError as e:
            logger.warning("Event recording failed", extra={"content_type": content_type.value, "error": str(e)})
