"""Tests for the quote- and escape-aware scanner."""

from __future__ import annotations

import pytest

from bookloom.extraction.sanitize import json_candidate, sanitize_text
from bookloom.extraction.scanner import (
    decode_string_body,
    iter_objects,
    locate_key,
    scan_balanced,
    scan_string,
)


def test_scan_string_skips_escaped_quotes_and_raw_newlines() -> None:
    """An escaped quote or a raw newline must not end the string."""

    text = '"He said \\"hi\\"\nbye", "next": 1'
    scan = scan_string(text, 0)

    assert scan.terminated
    assert scan.body == 'He said \\"hi\\"\nbye'
    assert text[scan.end :].startswith(", ")
    assert decode_string_body(scan.body) == 'He said "hi"\nbye'


def test_scan_string_unterminated_runs_to_end() -> None:
    scan = scan_string('"Once upon a ti', 0)

    assert not scan.terminated
    assert scan.body == "Once upon a ti"
    assert scan.end == len('"Once upon a ti')


def test_scan_string_requires_opening_quote() -> None:
    with pytest.raises(ValueError):
        scan_string("abc", 0)


def test_scan_balanced_ignores_brackets_inside_strings() -> None:
    text = '[{"t": "a]b"}, {"t": "[[["}, 2] tail'

    assert scan_balanced(text, 0) == '[{"t": "a]b"}, {"t": "[[["}, 2]'


def test_scan_balanced_returns_none_when_unbalanced() -> None:
    assert scan_balanced('[{"t": "a"}, {"t": ', 0) is None
    assert scan_balanced("no bracket here", 0) is None


def test_iter_objects_stops_at_truncated_object() -> None:
    text = '{"a": 1}, {"b": "}"}, {"c":'

    assert list(iter_objects(text)) == ['{"a": 1}', '{"b": "}"}']


def test_locate_key_skips_nested_keys() -> None:
    """A top-level lookup must not land on a ``title`` inside the chapters array."""

    text = '{"chapters": [{"title": "X"}], "title": "Y"}'
    at = locate_key(text, "title")

    assert at is not None
    assert text[at : at + 3] == '"Y"'
    assert text[locate_key(text, "title", top_level_only=False) :].startswith('"X"')


def test_locate_key_ignores_values_equal_to_key() -> None:
    text = '{"note": "title", "title": "Real"}'
    at = locate_key(text, "title")

    assert at is not None
    assert text[at:].startswith('"Real"')


def test_decode_string_body_drops_dangling_backslash() -> None:
    assert decode_string_body("abc\\") == "abc"
    assert decode_string_body("abc\\\\") == "abc\\"


def test_decode_string_body_tolerates_invalid_escape() -> None:
    assert decode_string_body("bad \\q escape \\u00e9") == "bad \\q escape é"


def test_sanitize_and_candidate() -> None:
    raw = "\ufeffHere you go:\x07 {\"a\": 1} thanks"

    cleaned = sanitize_text(raw)
    assert "\ufeff" not in cleaned
    assert "\x07" not in cleaned
    assert json_candidate(cleaned) == '{"a": 1}'
    assert json_candidate("no braces") is None
    assert json_candidate("} backwards {") is None


def test_decode_string_body_replaces_lone_surrogates() -> None:
    assert decode_string_body("cut \\ud83d") == "cut \ufffd"
    assert decode_string_body("smile \\ud83d\\ude00 \\q") == "smile \U0001f600 \\q"
