"""CLI entrypoints for Bookloom."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer

from bookloom.config import load_settings
from bookloom.errors import BookloomError
from bookloom.logging import configure_logging, get_logger
from bookloom.orchestrator.burst import BurstReport
from bookloom.orchestrator.pipeline import build_pipeline
from bookloom.storage import get_gateway

app = typer.Typer(add_completion=False, help="Bookloom topic-to-book generation CLI")
logger = get_logger(__name__)


@app.command()
def generate(
    topic: str = typer.Argument(..., help="Topic of the book (1-200 characters)."),
    wait: bool = typer.Option(
        False,
        "--wait",
        help="Also write every remaining section and wait for the background bursts to finish.",
    ),
    language: str = typer.Option("en", "--language", "-l", help="Output language code (en, es, fr, ...)."),
    document_id: str | None = typer.Option(None, "--document-id", help="Regenerate into an existing document."),
    session_token: str = typer.Option("local-cli-session", "--session-token", help="Session token sent with the request."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the shell JSON here instead of stdout."),
) -> None:
    """Generate a document shell, and optionally the whole document."""

    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info("CLI generation requested", extra={"wait": wait})

    async def _run() -> tuple[dict, BurstReport | None]:
        pipeline = build_pipeline(settings)
        try:
            resp = await pipeline.generate(
                {
                    "topic": topic,
                    "sessionToken": session_token,
                    "fullDocumentRequested": wait,
                    "existingDocumentId": document_id,
                    "language": language,
                }
            )
            report = await pipeline.supervisor.wait(resp.document_id) if resp.burst_launched else None
            return {"document_id": resp.document_id, "shell": resp.shell.model_dump(mode="json")}, report
        finally:
            await pipeline.aclose()

    try:
        result, report = asyncio.run(_run())
    except BookloomError as e:
        typer.echo(f"Error: {e.user_message}", err=True)
        raise typer.Exit(code=1) from e

    text = json.dumps(result, ensure_ascii=False, indent=2)
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
        typer.echo(str(output))
    else:
        typer.echo(text)
    if report is not None:
        typer.echo(f"persisted={report.persisted} failed={report.failed}", err=True)


@app.command()
def show(document_id: str = typer.Argument(..., help="Document id returned by `generate`.")) -> None:
    """Print the current state of a document, gaps included."""

    settings = load_settings()
    configure_logging(settings.log_level)

    async def _load():
        gateway = get_gateway(settings)
        try:
            return await gateway.get_document(document_id)
        finally:
            await gateway.close()

    try:
        doc = asyncio.run(_load())
    except BookloomError as e:
        typer.echo(f"Error: {e.user_message}", err=True)
        raise typer.Exit(code=1) from e
    if doc is None:
        typer.echo(f"Document not found: {document_id}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(doc.model_dump(mode="json"), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    app()
