"""Synchronous request path: validate, gate, classify, shell, hand off.

The caller gets the shell back as soon as it is persisted. When the full
document is requested the remaining sections are handed to the burst
orchestrator as a supervised background task; the only thing the two paths
share is the document id.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from bookloom.classification import KeywordTables, TopicClassifier, load_keyword_tables
from bookloom.config import Settings
from bookloom.errors import InvalidInput, PersistenceError, SafetyRejected
from bookloom.events import ContentType, EventType
from bookloom.extraction import ShellExtractor, WarningCode
from bookloom.llm.client import GenerationClient, PromptPayload, SleepFn
from bookloom.llm.transport import ChatMessage, GenerationTransport, get_transport
from bookloom.logging import document_context, get_logger, set_step
from bookloom.models.classification import SafetyVerdict, TopicClassification
from bookloom.models.document import Document
from bookloom.models.request import GenerationRequest
from bookloom.models.shell import DocumentShell
from bookloom.orchestrator.burst import BurstOrchestrator, GenerationParams
from bookloom.orchestrator.supervisor import BackgroundSupervisor, TaskState
from bookloom.prompts import SHELL_SYSTEM_PROMPT, build_shell_prompt
from bookloom.recording.file_recorder import FileEventRecorder
from bookloom.safety import SafetyGate
from bookloom.storage import PersistenceGateway, get_gateway, validate_document_id
from bookloom.utils.ids import new_document_id
from bookloom.utils.text import clean_topic, title_case

logger = get_logger(__name__)


@dataclass(frozen=True)
class GenerationResponse:
    """What the caller receives synchronously."""

    document_id: str
    shell: DocumentShell
    verdict: SafetyVerdict
    classification: TopicClassification
    burst_launched: bool


class DocumentPipeline:
    """Wire the gate, classifier, client, extractor and orchestrator together."""

    def __init__(
        self,
        settings: Settings,
        *,
        client: GenerationClient,
        gateway: PersistenceGateway,
        tables: KeywordTables,
        supervisor: BackgroundSupervisor | None = None,
        recorder: FileEventRecorder | None = None,
        transport: GenerationTransport | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.client = client
        self.gateway = gateway
        self.tables = tables
        self.supervisor = supervisor or BackgroundSupervisor()
        self.recorder = recorder
        self._transport = transport
        # Document ids with a request between id check and burst launch.
        self._reserved: set[str] = set()

        self.safety = SafetyGate(
            client,
            tables,
            timeout_s=settings.safety_timeout_s,
            enabled=settings.safety_enabled,
        )
        self.classifier = TopicClassifier(tables)
        self.extractor = ShellExtractor(
            section_count=settings.default_section_count,
            excerpt_chars=settings.draft_excerpt_chars,
            synthetic_outline=tables.synthetic_outline or None,
        )
        self.orchestrator = BurstOrchestrator(
            client,
            gateway,
            group_size=settings.burst_group_size,
            delay_s=settings.burst_delay_s,
            sleep=sleep,
            recorder=recorder,
        )

    async def generate(self, data: GenerationRequest | dict[str, Any]) -> GenerationResponse:
        """Produce and persist the shell; launch the burst if requested.

        Raises:
            InvalidInput: Validation failed. No backend call was made.
            SafetyRejected: The gate refused the topic. No generation call was made.
            UpstreamError: Shell generation failed after retries, or terminally.
            PersistenceError: The shell could not be stored.
        """

        request = data if isinstance(data, GenerationRequest) else GenerationRequest.parse_input(data)
        document_id = self._document_id_for(request)
        self._reserved.add(document_id)
        try:
            return await self._generate(request, document_id)
        finally:
            self._reserved.discard(document_id)

    async def _generate(self, request: GenerationRequest, document_id: str) -> GenerationResponse:
        with document_context(document_id=document_id, step="safety"):
            verdict = await self.safety.evaluate(request.topic)
            await self._emit(document_id, EventType.SYSTEM, ContentType.SAFETY_VERDICT, verdict.model_dump(mode="json"))
            if not verdict.allowed:
                logger.warning("Topic rejected by safety gate", extra={"reason": verdict.reason})
                raise SafetyRejected(
                    f"safety gate rejected topic: {verdict.reason}",
                    reason=verdict.reason,
                    user_message="This topic cannot be turned into a book. Please try a different topic.",
                )

            set_step("classify")
            classification = self.classifier.classify(request.topic)
            await self._emit(
                document_id,
                EventType.SYSTEM,
                ContentType.TOPIC_CLASSIFIED,
                classification.model_dump(mode="json"),
            )

            set_step("shell")
            shell = await self._generate_shell(request, classification)
            await self.gateway.upsert_shell(document_id, shell)
            logger.info(
                "Shell ready",
                extra={"sections": len(shell.table_of_contents), "shell_warnings": len(shell.warnings)},
            )
            await self._emit(
                document_id,
                EventType.STORAGE,
                ContentType.SHELL_READY,
                {"title": shell.title, "sections": len(shell.table_of_contents), "warnings": shell.warnings},
            )

            launched = False
            if request.full_document_requested:
                params = GenerationParams(
                    topic=request.topic,
                    book_title=shell.title,
                    language_name=request.language_name,
                    temperature=self.settings.section_temperature,
                    max_output_tokens=self.settings.section_max_output_tokens,
                )
                self.supervisor.launch(
                    document_id,
                    self.orchestrator.run(document_id, shell.table_of_contents, params),
                )
                launched = True

        return GenerationResponse(
            document_id=document_id,
            shell=shell,
            verdict=verdict,
            classification=classification,
            burst_launched=launched,
        )

    def _document_id_for(self, request: GenerationRequest) -> str:
        if request.existing_document_id is None:
            return new_document_id()
        try:
            document_id = validate_document_id(request.existing_document_id)
        except PersistenceError as e:
            raise InvalidInput(str(e), user_message="The document id is invalid.") from e
        if document_id in self._reserved or self.supervisor.status(document_id) is TaskState.RUNNING:
            raise InvalidInput(
                f"document {document_id} is still generating",
                user_message="This book is still being written. Please wait for it to finish.",
            )
        return document_id

    async def _generate_shell(self, request: GenerationRequest, classification: TopicClassification) -> DocumentShell:
        topic_title = title_case(clean_topic(request.topic))
        payload = PromptPayload(
            messages=[
                ChatMessage(role="system", content=SHELL_SYSTEM_PROMPT),
                ChatMessage(
                    role="user",
                    content=build_shell_prompt(
                        topic=request.topic,
                        topic_title=topic_title,
                        classification=classification,
                        language_name=request.language_name,
                        section_count=self.settings.default_section_count,
                    ),
                ),
            ],
            temperature=self.settings.shell_temperature,
            json_mode=True,
        )
        raw = await self.client.generate_text(payload, self.settings.shell_max_output_tokens)
        result = self.extractor.extract(raw, request.topic, default_subtitle=classification.subtitle)

        flagged = self.tables.match_trademarks(f"{request.topic} {result.shell.title}")
        if not flagged:
            return result.shell
        logger.warning("Trademark watchlist terms in topic or title", extra={"terms": flagged})
        extra = [WarningCode.TRADEMARK_WATCHLIST.at(term) for term in flagged]
        return result.shell.model_copy(update={"warnings": [*result.shell.warnings, *extra]})

    async def get_document(self, document_id: str) -> Document | None:
        try:
            validate_document_id(document_id)
        except PersistenceError:
            return None
        return await self.gateway.get_document(document_id)

    async def aclose(self) -> None:
        await self.supervisor.shutdown()
        await self.gateway.close()
        aclose = getattr(self._transport, "aclose", None)
        if aclose is not None:
            await aclose()

    async def _emit(self, document_id: str, event_type: EventType, content_type: ContentType, data: Any) -> None:
        if self.recorder is not None:
            await self.recorder.aemit(document_id, event_type, content_type, data)


def build_pipeline(settings: Settings, *, transport: GenerationTransport | None = None) -> DocumentPipeline:
    """Build a pipeline from settings, using the configured backend and store."""

    transport = transport or get_transport(settings)
    return DocumentPipeline(
        settings,
        client=GenerationClient.from_settings(settings, transport),
        gateway=get_gateway(settings),
        tables=load_keyword_tables(settings.keyword_tables_path),
        recorder=FileEventRecorder(settings.artifacts_dir / "events"),
        transport=transport,
    )
