"""Sanitization of raw backend text before any parsing."""

from __future__ import annotations

import re

from bookloom.utils.text import replace_lone_surrogates

_BOM = "\ufeff"
# Control characters except tab, newline and carriage return (C0, DEL and C1).
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")


def sanitize_text(text: str) -> str:
    """Strip byte-order marks, non-whitespace control characters and lone surrogates."""

    if not text:
        return ""
    return replace_lone_surrogates(_CONTROL_RE.sub("", text.replace(_BOM, "")))


def json_candidate(text: str) -> str | None:
    """Slice from the first ``{`` to the last ``}``; ``None`` if there is no such pair."""

    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last == -1 or last < first:
        return None
    return text[first : last + 1]
