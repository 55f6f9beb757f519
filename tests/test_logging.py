"""Tests for structured logging."""

from __future__ import annotations

import asyncio
import logging

from bookloom.logging import _ContextFilter, _StructuredFormatter, document_context, section_context

_FMT = "doc=%(document_id)s step=%(step)s section=%(section)s %(message)s"


def _render(msg: str, **extra) -> str:
    record = logging.makeLogRecord({"name": "t", "levelno": logging.INFO, "levelname": "INFO", "msg": msg, **extra})
    _ContextFilter().filter(record)
    return _StructuredFormatter(fmt=_FMT).format(record)


def test_records_outside_a_document_use_placeholders() -> None:
    assert _render("hello") == "doc=- step=- section=- hello"


def test_extra_fields_are_appended() -> None:
    with document_context(document_id="doc-1", step="shell"):
        line = _render("Shell ready", sections=10, title="Tokyo")

    assert line == "doc=doc-1 step=shell section=- Shell ready sections=10 title='Tokyo'"


def test_section_context_is_task_local() -> None:
    """Concurrent sections of one burst each log their own index."""

    async def section(index: int) -> str:
        with section_context(index):
            await asyncio.sleep(0)
            return _render("Section persisted")

    async def main():
        with document_context(document_id="doc-2", step="group:1"):
            lines = await asyncio.gather(section(2), section(3))
            return lines, _render("Burst finished")

    lines, after = asyncio.run(main())

    assert lines == [
        "doc=doc-2 step=section section=2 Section persisted",
        "doc=doc-2 step=section section=3 Section persisted",
    ]
    assert after == "doc=doc-2 step=group:1 section=- Burst finished"
