"""File-based event recorder.

Records events to one ``<document_id>.events.jsonl`` file per document.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bookloom.events import ContentType, DocumentEvent, EventType


@dataclass
class FileEventRecorder:
    """Append-only JSONL recorder."""

    root: Path
    _seq: dict[str, itertools.count] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        self.root = Path(self.root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, document_id: str) -> Path:
        return self.root / f"{document_id}.events.jsonl"

    def append(self, event: DocumentEvent) -> None:
        """Append an event."""

        with self._lock:
            self._write(event)

    def _write(self, event: DocumentEvent) -> None:
        line = json.dumps(event.model_dump(mode="json"), ensure_ascii=False)
        with self.path_for(event.document_id).open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    def emit(
        self,
        document_id: str,
        event_type: EventType,
        content_type: ContentType,
        data: Any = None,
        **metadata: str | int | float | bool | None,
    ) -> DocumentEvent:
        """Build the next event for ``document_id`` and append it.

        Numbering and the write happen under one lock, so file order always
        matches ``seq`` even when events are emitted from worker threads.
        """

        with self._lock:
            counter = self._seq.get(document_id)
            if counter is None:
                counter = self._seq[document_id] = itertools.count(len(iter_events(self.path_for(document_id))) + 1)
            event = DocumentEvent(
                document_id=document_id,
                seq=next(counter),
                event_type=event_type,
                content_type=content_type,
                data=data,
                metadata=metadata,
            )
            self._write(event)
        return event

    async def aemit(
        self,
        document_id: str,
        event_type: EventType,
        content_type: ContentType,
        data: Any = None,
        **metadata: str | int | float | bool | None,
    ) -> DocumentEvent:
        """:meth:`emit` off the event loop."""

        return await asyncio.to_thread(self.emit, document_id, event_type, content_type, data, **metadata)


def iter_events(path: Path) -> list[DocumentEvent]:
    """Load all events from a JSONL file."""

    events: list[DocumentEvent] = []
    if not path.exists():
        return events
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line:
            continue
        events.append(DocumentEvent.model_validate_json(line))
    return events
