"""Logging utilities.

Every record carries the document it belongs to, the pipeline step and, inside
a burst, the section index. Fields passed through ``extra={...}`` are appended
to the message as ``key=value`` pairs.
"""

from __future__ import annotations

import contextlib
import contextvars
import logging
from typing import Any, Iterator

from rich.logging import RichHandler


_document_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("bookloom_document_id", default="-")
_step_var: contextvars.ContextVar[str] = contextvars.ContextVar("bookloom_step", default="-")
_section_var: contextvars.ContextVar[int | None] = contextvars.ContextVar("bookloom_section", default=None)

# Backend client libraries log every HTTP exchange at INFO; a burst makes dozens.
_CHATTY_LOGGERS = ("httpx", "httpcore", "openai")

_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
    "document_id",
    "step",
    "section",
}


class _ContextFilter(logging.Filter):
    """Inject document context into log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.document_id = _document_id_var.get()  # type: ignore[attr-defined]
        record.step = _step_var.get()  # type: ignore[attr-defined]
        section = _section_var.get()
        record.section = "-" if section is None else section  # type: ignore[attr-defined]
        return True


class _StructuredFormatter(logging.Formatter):
    """Append ``extra`` fields to the formatted message."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS and not k.startswith("_")}
        if not fields:
            return line
        return line + " " + " ".join(f"{k}={v!r}" for k, v in fields.items())


@contextlib.contextmanager
def document_context(*, document_id: str, step: str | None = None) -> Iterator[None]:
    """Temporarily bind document context for structured logging.

    Context variables are copied into every asyncio task created inside the
    block, so section tasks inherit the document id of their burst.

    Args:
        document_id: Document identifier.
        step: Optional step identifier (e.g. ``shell`` or ``group:2``).
    """

    token_doc = _document_id_var.set(document_id)
    token_step = _step_var.set(step or _step_var.get())
    try:
        yield
    finally:
        _document_id_var.reset(token_doc)
        _step_var.reset(token_step)


@contextlib.contextmanager
def section_context(index: int) -> Iterator[None]:
    """Bind the section being generated; the step becomes ``section``."""

    token_section = _section_var.set(index)
    token_step = _step_var.set("section")
    try:
        yield
    finally:
        _section_var.reset(token_section)
        _step_var.reset(token_step)


def set_step(step: str) -> None:
    """Update current step in context."""

    _step_var.set(step)


def configure_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Args:
        level: Logging level name. Backend HTTP client loggers stay at WARNING
            unless ``level`` is DEBUG.
    """

    handler = RichHandler(rich_tracebacks=True, show_time=True, show_level=True)
    handler.addFilter(_ContextFilter())

    formatter = _StructuredFormatter(
        fmt="%(asctime)s %(levelname)s doc=%(document_id)s step=%(step)s section=%(section)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    # Avoid duplicate handlers if configure_logging is called multiple times
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(handler)
    else:
        for h in root.handlers:
            if isinstance(h, RichHandler):
                h.addFilter(_ContextFilter())
                h.setFormatter(formatter)

    chatty_level = logging.DEBUG if logging.getLevelName(level) == logging.DEBUG else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)


def get_logger(name: str) -> logging.Logger:
    """Get a module logger."""

    return logging.getLogger(name)
