"""Resilient extraction of structured data from backend text."""

from __future__ import annotations

from bookloom.extraction.extractor import DRAFT_MARKER, ExtractionResult, ShellExtractor, WarningCode
from bookloom.extraction.sanitize import json_candidate, sanitize_text
from bookloom.extraction.scanner import StringScan, decode_string_body, locate_key, scan_balanced, scan_string

__all__ = [
    "DRAFT_MARKER",
    "ExtractionResult",
    "ShellExtractor",
    "StringScan",
    "WarningCode",
    "decode_string_body",
    "json_candidate",
    "locate_key",
    "sanitize_text",
    "scan_balanced",
    "scan_string",
]
