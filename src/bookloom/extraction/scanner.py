"""Quote- and escape-aware scanning of almost-JSON text.

A small state machine over three flags: whether we are inside a string,
whether the previous character was an unconsumed backslash, and (for
bracket scans) the current nesting depth. Brackets and quotes inside string
values never affect the structure seen by the scanner.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Iterator

from bookloom.utils.text import replace_lone_surrogates

_RAW_WHITESPACE = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}
_SIMPLE_ESCAPES = {'"': '"', "\\": "\\", "/": "/", "b": "\b", "f": "\f", "n": "\n", "r": "\r", "t": "\t"}
_ESCAPE_RE = re.compile(r'\\(["\\/bfnrt]|u[0-9a-fA-F]{4})')


@dataclass(frozen=True)
class StringScan:
    """A string literal located by :func:`scan_string`."""

    body: str
    start: int
    end: int
    terminated: bool


def scan_string(text: str, start: int) -> StringScan:
    """Scan a string literal whose opening quote is at ``text[start]``.

    Escaped quotes and raw newlines do not end the scan. An unterminated
    literal runs to the end of the text.
    """

    if start >= len(text) or text[start] != '"':
        raise ValueError(f"no opening quote at offset {start}")

    escaped = False
    for i in range(start + 1, len(text)):
        ch = text[i]
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            return StringScan(body=text[start + 1 : i], start=start, end=i + 1, terminated=True)
    return StringScan(body=text[start + 1 :], start=start, end=len(text), terminated=False)


def scan_balanced(text: str, start: int, open_char: str = "[", close_char: str = "]") -> str | None:
    """Return ``text[start:j+1]`` where ``j`` closes the bracket opened at ``start``.

    Brackets only count outside string literals. ``None`` when the depth never
    returns to zero.
    """

    if start >= len(text) or text[start] != open_char:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == open_char:
            depth += 1
        elif ch == close_char:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def iter_objects(text: str) -> Iterator[str]:
    """Yield every balanced ``{...}`` object found outside string literals, in order."""

    i = 0
    in_string = False
    escaped = False
    while i < len(text):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            chunk = scan_balanced(text, i, "{", "}")
            if chunk is None:
                return
            yield chunk
            i += len(chunk)
            continue
        i += 1


def locate_key(text: str, key: str, *, top_level_only: bool = True) -> int | None:
    """Find ``"key":`` and return the offset of the first character of its value.

    With ``top_level_only`` the key must sit directly inside the outermost
    object, so a ``"title"`` nested inside an array of chapters is skipped.
    """

    depth = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == '"':
            scan = scan_string(text, i)
            if not scan.terminated:
                return None
            if scan.body == key and (not top_level_only or depth <= 1):
                j = _skip_ws(text, scan.end)
                if j < len(text) and text[j] == ":":
                    value_at = _skip_ws(text, j + 1)
                    return value_at if value_at < len(text) else None
            i = scan.end
            continue
        if ch in "{[":
            depth += 1
        elif ch in "}]":
            depth = max(0, depth - 1)
        i += 1
    return None


def escape_raw_whitespace(body: str) -> str:
    """Re-escape raw newlines, carriage returns and tabs found inside a string body."""

    return "".join(_RAW_WHITESPACE.get(ch, ch) for ch in body)


def decode_string_body(body: str) -> str:
    """Decode the body of a JSON string literal, tolerating invalid escapes."""

    trailing = len(body) - len(body.rstrip("\\"))
    if trailing % 2:
        # A dangling backslash at the end of a truncated value escapes nothing.
        body = body[:-1]
    escaped = escape_raw_whitespace(body)
    try:
        return replace_lone_surrogates(json.loads('"' + escaped + '"'))
    except json.JSONDecodeError:
        return replace_lone_surrogates(_lenient_unescape(escaped))


def _lenient_unescape(body: str) -> str:
    def repl(m: re.Match[str]) -> str:
        token = m.group(1)
        if token.startswith("u"):
            return chr(int(token[1:], 16))
        return _SIMPLE_ESCAPES[token]

    return _ESCAPE_RE.sub(repl, body)


def _skip_ws(text: str, i: int) -> int:
    while i < len(text) and text[i] in " \t\r\n":
        i += 1
    return i
