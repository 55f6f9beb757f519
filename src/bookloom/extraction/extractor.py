"""Recover a document shell from a response that should be JSON but may not be.

Strategy (from strict to lenient):
    1. Sanitize, then slice from the first ``{`` to the last ``}``.
    2. Strict ``json.loads`` of that slice.
    3. Field-by-field recovery with the quote-aware scanner.
    4. Deterministic defaults for anything still missing.

Each fallback appends a named warning. :meth:`ShellExtractor.extract` never raises.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from bookloom.extraction.sanitize import json_candidate, sanitize_text
from bookloom.extraction.scanner import decode_string_body, iter_objects, locate_key, scan_balanced, scan_string
from bookloom.logging import get_logger
from bookloom.models.shell import AuxiliaryResource, DocumentShell, OutlineEntry
from bookloom.utils.text import clean_topic, replace_lone_surrogates, title_case, truncate

logger = get_logger(__name__)

DRAFT_MARKER = "[DRAFT]"

_STRING_FIELDS: dict[str, tuple[str, ...]] = {
    "title": ("main_title", "title"),
    "subtitle": ("subtitle",),
    "first_section_content": ("chapter_1_content", "first_section_content", "chapter1_content"),
}
_ARRAY_FIELDS: dict[str, tuple[str, ...]] = {
    "table_of_contents": ("chapters", "table_of_contents", "outline"),
    "auxiliary_resources": ("local_resources", "auxiliary_resources"),
}
# Keys that also appear inside nested outline items; never searched below the top level.
_NESTED_KEYS = frozenset({"title"})

_INDEX_KEYS = ("chapter_number", "chapter", "index", "number")
_HINT_KEYS = ("image_description", "image_hint", "imageHint", "imageDescription")

_FALLBACK_OUTLINE = (
    "Introduction",
    "Foundations of {topic}",
    "Core Concepts",
    "Getting Started",
    "Essential Techniques",
    "Common Mistakes and How to Avoid Them",
    "Advanced Strategies",
    "Real-World Examples",
    "Planning Your Next Steps",
    "Conclusion",
)


class WarningCode(str, Enum):
    """Degradation flags attached to an extracted shell."""

    NO_JSON_OBJECT = "no_json_object"
    STRICT_PARSE_FAILED = "strict_parse_failed"
    NOT_AN_OBJECT = "not_an_object"
    FIELD_RECOVERED = "field_recovered"
    FIELD_DEFAULTED = "field_defaulted"
    TRUNCATED_FIELD = "truncated_field"
    ARRAY_SALVAGED = "array_salvaged"
    OUTLINE_REINDEXED = "outline_reindexed"
    EXTRACTION_ERROR = "extraction_error"
    TRADEMARK_WATCHLIST = "trademark_watchlist"

    def at(self, detail: str) -> str:
        return f"{self.value}:{detail}"


@dataclass(frozen=True)
class ExtractionResult:
    shell: DocumentShell
    warnings: list[str] = field(default_factory=list)


class ShellExtractor:
    """Turn raw backend text into a fully populated :class:`DocumentShell`."""

    def __init__(
        self,
        *,
        section_count: int = 10,
        excerpt_chars: int = 2000,
        synthetic_outline: list[str] | None = None,
    ) -> None:
        self._section_count = section_count
        self._excerpt_chars = excerpt_chars
        self._synthetic_outline = list(synthetic_outline or _FALLBACK_OUTLINE)

    def extract(self, raw_text: str, topic: str, *, default_subtitle: str | None = None) -> ExtractionResult:
        warnings: list[str] = []
        sanitized = sanitize_text(raw_text or "")
        try:
            fields = self._recover_fields(sanitized, warnings)
        except Exception:  # the shell must always come back usable
            logger.exception("Shell extraction crashed; using defaults", extra={"raw_len": len(sanitized)})
            warnings.append(WarningCode.EXTRACTION_ERROR.value)
            fields = {}

        shell = self._build_shell(fields, sanitized, topic, default_subtitle, warnings)
        if warnings:
            logger.warning("Shell extracted with degradation", extra={"shell_warnings": warnings})
        return ExtractionResult(shell=shell, warnings=list(warnings))

    # -- recovery ---------------------------------------------------------

    def _recover_fields(self, text: str, warnings: list[str]) -> dict[str, Any]:
        candidate = json_candidate(text)
        if candidate is None:
            warnings.append(WarningCode.NO_JSON_OBJECT.value)
            candidate = text

        try:
            parsed = json.loads(candidate)
        except (json.JSONDecodeError, RecursionError):
            warnings.append(WarningCode.STRICT_PARSE_FAILED.value)
        else:
            if isinstance(parsed, dict):
                return {name: _first_present(parsed, keys) for name, keys in {**_STRING_FIELDS, **_ARRAY_FIELDS}.items()}
            warnings.append(WarningCode.NOT_AN_OBJECT.value)

        return self._field_by_field(candidate, warnings)

    def _field_by_field(self, text: str, warnings: list[str]) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        for name, keys in _STRING_FIELDS.items():
            value = _recover_string(text, keys, name, warnings)
            if value:
                fields[name] = value
                warnings.append(WarningCode.FIELD_RECOVERED.at(name))
        for name, keys in _ARRAY_FIELDS.items():
            value = _recover_array(text, keys, name, warnings)
            if value is not None:
                fields[name] = value
                warnings.append(WarningCode.FIELD_RECOVERED.at(name))
        return fields

    # -- defaults ---------------------------------------------------------

    def _build_shell(
        self,
        fields: dict[str, Any],
        sanitized: str,
        topic: str,
        default_subtitle: str | None,
        warnings: list[str],
    ) -> DocumentShell:
        topic_title = title_case(clean_topic(topic)) or "Untitled"

        title = _clean_str(fields.get("title"))
        if not title:
            title = topic_title
            warnings.append(WarningCode.FIELD_DEFAULTED.at("title"))

        subtitle = _clean_str(fields.get("subtitle"))
        if not subtitle:
            subtitle = default_subtitle or f"A Comprehensive Guide to {topic_title}"
            warnings.append(WarningCode.FIELD_DEFAULTED.at("subtitle"))

        outline = self._coerce_outline(fields.get("table_of_contents"), warnings)
        if not outline:
            outline = self._synthetic(topic_title)
            warnings.append(WarningCode.FIELD_DEFAULTED.at("table_of_contents"))

        first_section = _clean_str(fields.get("first_section_content"))
        if not first_section:
            excerpt = truncate(sanitized.strip(), self._excerpt_chars)
            first_section = f"{DRAFT_MARKER} {excerpt or f'{title} is still being written.'}"
            warnings.append(WarningCode.FIELD_DEFAULTED.at("first_section_content"))

        resources = _coerce_resources(fields.get("auxiliary_resources"))

        return DocumentShell(
            title=title,
            display_title=title,
            subtitle=subtitle,
            table_of_contents=outline,
            first_section_content=first_section,
            auxiliary_resources=resources,
            warnings=list(warnings),
        )

    def _synthetic(self, topic_title: str) -> list[OutlineEntry]:
        entries: list[OutlineEntry] = []
        for i in range(1, self._section_count + 1):
            if i == self._section_count:
                template = self._synthetic_outline[-1]
            elif i - 1 < len(self._synthetic_outline) - 1:
                template = self._synthetic_outline[i - 1]
            else:
                template = f"Chapter {i}"
            entries.append(OutlineEntry(index=i, title=template.format(topic=topic_title)))
        return entries

    def _coerce_outline(self, value: Any, warnings: list[str]) -> list[OutlineEntry]:
        if not isinstance(value, list):
            return []

        items: list[tuple[int | None, str, str]] = []
        for item in value:
            if isinstance(item, str) and item.strip():
                items.append((None, item.strip(), ""))
            elif isinstance(item, dict):
                title = _clean_str(item.get("title"))
                if not title:
                    continue
                items.append((_as_index(_first_present(item, _INDEX_KEYS)), title, _clean_str(_first_present(item, _HINT_KEYS))))
        if not items:
            return []

        indices = [i for i, _, _ in items]
        if indices != list(range(1, len(items) + 1)):
            if all(i is not None for i in indices) and sorted(indices) == list(range(1, len(items) + 1)):
                items.sort(key=lambda it: it[0])
            else:
                warnings.append(WarningCode.OUTLINE_REINDEXED.value)
        return [OutlineEntry(index=n, title=title, image_hint=hint) for n, (_, title, hint) in enumerate(items, start=1)]


def _first_present(data: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in data and data[key] not in (None, ""):
            return data[key]
    return None


def _locate(text: str, keys: tuple[str, ...]) -> tuple[str, int] | None:
    for key in keys:
        at = locate_key(text, key)
        if at is None and key not in _NESTED_KEYS:
            m = re.search(r'"' + re.escape(key) + r'"\s*:\s*', text)
            at = m.end() if m and m.end() < len(text) else None
        if at is not None:
            return key, at
    return None


def _recover_string(text: str, keys: tuple[str, ...], name: str, warnings: list[str]) -> str | None:
    found = _locate(text, keys)
    if found is None:
        return None
    _, at = found
    if text[at] != '"':
        return None
    scan = scan_string(text, at)
    if not scan.terminated:
        warnings.append(WarningCode.TRUNCATED_FIELD.at(name))
    return decode_string_body(scan.body)


def _recover_array(text: str, keys: tuple[str, ...], name: str, warnings: list[str]) -> list[Any] | None:
    found = _locate(text, keys)
    if found is None:
        return None
    _, at = found
    if text[at] != "[":
        return None
    chunk = scan_balanced(text, at, "[", "]")
    if chunk is None:
        # Unterminated array: salvage whatever complete objects precede the cut.
        chunk = text[at:]
    else:
        try:
            value = json.loads(chunk)
        except (json.JSONDecodeError, RecursionError):
            value = None
        if isinstance(value, list):
            return value

    salvaged: list[Any] = []
    for obj in iter_objects(chunk[1:]):
        try:
            salvaged.append(json.loads(obj))
        except (json.JSONDecodeError, RecursionError):
            continue
    if not salvaged:
        return None
    warnings.append(WarningCode.ARRAY_SALVAGED.at(name))
    return salvaged


def _coerce_resources(value: Any) -> list[AuxiliaryResource]:
    if not isinstance(value, list):
        return []
    out: list[AuxiliaryResource] = []
    for item in value:
        if isinstance(item, str) and item.strip():
            out.append(AuxiliaryResource(name=item.strip()))
        elif isinstance(item, dict) and _clean_str(item.get("name")):
            out.append(
                AuxiliaryResource(
                    name=_clean_str(item.get("name")),
                    type=_clean_str(item.get("type")),
                    description=_clean_str(item.get("description")),
                    address=_clean_str(item.get("address")),
                )
            )
    return out


def _clean_str(value: Any) -> str:
    if isinstance(value, str):
        return replace_lone_surrogates(value).strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _as_index(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 1 else None
    if isinstance(value, str) and value.strip().isdigit():
        n = int(value.strip())
        return n if n >= 1 else None
    return None
