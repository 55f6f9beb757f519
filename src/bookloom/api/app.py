"""FastAPI app: synchronous shell generation plus document and event lookup."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from bookloom.config import Settings, load_settings
from bookloom.errors import BookloomError
from bookloom.events import DocumentEvent
from bookloom.logging import configure_logging, get_logger
from bookloom.models.document import Document
from bookloom.orchestrator.pipeline import DocumentPipeline, build_pipeline
from bookloom.recording.file_recorder import iter_events


def create_app(settings: Settings | None = None, pipeline: DocumentPipeline | None = None) -> FastAPI:
    """Create FastAPI app."""

    settings = settings or load_settings()
    configure_logging(settings.log_level)
    logger = get_logger(__name__)
    pipeline = pipeline or build_pipeline(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        logger.info("API shutting down", extra={"active_bursts": pipeline.supervisor.active_count})
        await pipeline.aclose()

    app = FastAPI(title="Bookloom", version="0.1.0", lifespan=lifespan)
    app.state.pipeline = pipeline

    @app.exception_handler(BookloomError)
    async def bookloom_error(_: Request, exc: BookloomError) -> JSONResponse:
        if exc.http_status >= 500:
            logger.error("Request failed", extra={"code": type(exc).__name__, "error": str(exc)})
        else:
            logger.info("Request rejected", extra={"code": type(exc).__name__, "error": str(exc)})
        return JSONResponse(
            status_code=exc.http_status,
            content={"error": exc.user_message, "code": type(exc).__name__},
        )

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/documents")
    async def create_document(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        logger.info("API generation requested", extra={"topic_len": len(str(payload.get("topic", "")))})
        resp = await pipeline.generate(payload)
        return {
            "document_id": resp.document_id,
            "shell": resp.shell.model_dump(mode="json"),
            "classification": resp.classification.model_dump(mode="json"),
            "burst_launched": resp.burst_launched,
        }

    @app.get("/documents/{document_id}")
    async def get_document(document_id: str) -> Document:
        doc = await pipeline.get_document(document_id)
        if doc is None:
            raise HTTPException(status_code=404, detail="document not found")
        return doc

    @app.get("/documents/{document_id}/events")
    def document_events(document_id: str) -> list[DocumentEvent]:
        if pipeline.recorder is None:
            raise HTTPException(status_code=404, detail="event recording disabled")
        events = iter_events(pipeline.recorder.path_for(document_id))
        if not events:
            raise HTTPException(status_code=404, detail="document not found")
        return events

    return app
