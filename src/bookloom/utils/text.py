"""Text helpers shared by prompts, extraction and section post-processing."""

from __future__ import annotations

import re

_GUIDE_RE = re.compile(r"\b(travel )?guide\b", re.IGNORECASE)
_WORD_RE = re.compile(r"\w\S*")
_FENCE_OPEN_RE = re.compile(r"^```(?:markdown|md)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"```\s*$")
_IMAGE_MARKER_RE = re.compile(r"\[IMAGE:\s*([^\]]+)\]", re.IGNORECASE)
_SPACES_RE = re.compile(r"\s{2,}")
_SURROGATE_RE = re.compile(r"[\ud800-\udfff]")


def clean_topic(topic: str) -> str:
    """Drop filler words ("guide", "travel guide") the templates add themselves."""

    cleaned = _SPACES_RE.sub(" ", _GUIDE_RE.sub("", topic)).strip()
    return cleaned or topic.strip()


def title_case(text: str) -> str:
    """Capitalize the first letter of every word and lowercase the rest."""

    return _WORD_RE.sub(lambda m: m.group(0)[:1].upper() + m.group(0)[1:].lower(), text)


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    cut = text[:limit].rstrip()
    space = cut.rfind(" ")
    if space > limit * 0.8:
        cut = cut[:space]
    return cut + "…"


def strip_code_fences(text: str) -> str:
    """Remove a markdown code fence wrapped around a whole response."""

    return _FENCE_CLOSE_RE.sub("", _FENCE_OPEN_RE.sub("", text.strip())).strip()


def find_image_marker(text: str) -> str | None:
    """Return the prompt of the first ``[IMAGE: ...]`` marker, if any."""

    m = _IMAGE_MARKER_RE.search(text)
    return m.group(1).strip() if m else None


def replace_lone_surrogates(text: str) -> str:
    """Join escaped surrogate pairs and replace unpaired surrogates with U+FFFD.

    Unpaired surrogates come from truncated ``\\uXXXX`` escapes and cannot be
    encoded as UTF-8.
    """

    if not _SURROGATE_RE.search(text):
        return text
    paired = text.encode("utf-16", "surrogatepass").decode("utf-16", "surrogatepass")
    return _SURROGATE_RE.sub("\ufffd", paired)
