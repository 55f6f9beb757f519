"""Tests for ShellExtractor."""

from __future__ import annotations

import asyncio
import json

import pytest

from bookloom.extraction import DRAFT_MARKER, ShellExtractor
from bookloom.storage import FileGateway


def _full_payload(chapters: int = 3) -> dict:
    return {
        "main_title": "Tokyo Nights",
        "subtitle": "Where the City Eats After Dark",
        "chapters": [
            {"chapter_number": i, "title": f"Chapter {i}", "image_description": f"alley {i}"}
            for i in range(1, chapters + 1)
        ],
        "chapter_1_content": "## Welcome\n\nTokyo never sleeps.",
        "local_resources": [{"name": "Golden Gai", "type": "bar district"}],
    }


def _assert_complete(shell) -> None:
    assert shell.title
    assert shell.display_title
    assert shell.subtitle
    assert shell.table_of_contents
    assert shell.first_section_content
    assert [e.index for e in shell.table_of_contents] == list(range(1, len(shell.table_of_contents) + 1))


def test_strict_json_has_no_warnings() -> None:
    """A well-formed answer should pass through untouched."""

    result = ShellExtractor().extract(json.dumps(_full_payload()), "tokyo food")

    assert result.warnings == []
    shell = result.shell
    assert shell.title == "Tokyo Nights"
    assert shell.display_title == "Tokyo Nights"
    assert [e.title for e in shell.table_of_contents] == ["Chapter 1", "Chapter 2", "Chapter 3"]
    assert shell.table_of_contents[1].image_hint == "alley 2"
    assert shell.auxiliary_resources[0].name == "Golden Gai"
    assert shell.warnings == []


def test_json_wrapped_in_prose_and_fences() -> None:
    raw = "Sure! Here is your book:\n```json\n" + json.dumps(_full_payload()) + "\n```\nEnjoy."

    result = ShellExtractor().extract(raw, "tokyo food")

    assert result.warnings == []
    assert result.shell.subtitle == "Where the City Eats After Dark"


def test_field_recovery_keeps_escaped_quote_and_newline() -> None:
    """Raw newline breaks strict parsing; the scanner must still recover the full value."""

    raw = (
        '{"main_title": "T", "subtitle": "S", '
        '"chapters": [{"chapter_number": 1, "title": "One"}, {"chapter_number": 2, "title": "Two"}], '
        '"chapter_1_content": "He said \\"hi\\"\nbye"}'
    )

    result = ShellExtractor().extract(raw, "anything")

    assert "strict_parse_failed" in result.warnings
    assert "field_recovered:first_section_content" in result.warnings
    assert result.shell.first_section_content == 'He said "hi"\nbye'
    assert result.shell.title == "T"
    assert [e.title for e in result.shell.table_of_contents] == ["One", "Two"]


def test_brackets_inside_outline_titles() -> None:
    raw = (
        '{"main_title": "Brackets", "chapters": ['
        '{"chapter_number": 1, "title": "Part [1]: Setup]"}, '
        '{"chapter_number": 2, "title": "Arrays [] and {objects}"}], '
        '"chapter_1_content": "line one\nline two"}'
    )

    result = ShellExtractor().extract(raw, "data structures")

    assert [e.title for e in result.shell.table_of_contents] == ["Part [1]: Setup]", "Arrays [] and {objects}"]
    assert "field_recovered:table_of_contents" in result.warnings


def test_no_braces_falls_back_completely() -> None:
    result = ShellExtractor().extract("Just some prose about bread.", "sourdough bread guide")

    shell = result.shell
    _assert_complete(shell)
    assert "no_json_object" in result.warnings
    assert shell.title == "Sourdough Bread"
    assert shell.subtitle == "A Comprehensive Guide to Sourdough Bread"
    assert shell.first_section_content.startswith(DRAFT_MARKER)
    assert "Just some prose about bread." in shell.first_section_content
    assert len(shell.table_of_contents) == 10
    assert shell.table_of_contents[0].title == "Introduction"
    assert shell.table_of_contents[1].title == "Foundations of Sourdough Bread"
    assert shell.table_of_contents[-1].title == "Conclusion"
    assert "field_defaulted:table_of_contents" in result.warnings


def test_default_subtitle_comes_from_caller() -> None:
    result = ShellExtractor().extract("nothing useful", "rust", default_subtitle="A Practical Technical Manual for Rust")

    assert result.shell.subtitle == "A Practical Technical Manual for Rust"
    assert "field_defaulted:subtitle" in result.warnings


def test_bom_and_control_characters_are_stripped() -> None:
    payload = _full_payload()
    payload["main_title"] = "Clean\x07 Title"
    raw = "\ufeff" + json.dumps(payload, ensure_ascii=False).replace("\\u0007", "\x07")

    result = ShellExtractor().extract(raw, "tokyo food")

    assert result.shell.title == "Clean Title"
    assert result.warnings == []


def test_truncated_array_is_salvaged() -> None:
    raw = (
        '{"main_title": "Cut", "chapters": [{"chapter_number": 1, "title": "A"}, '
        '{"chapter_number": 2, "title": "B"}, {"chapter_nu'
    )

    result = ShellExtractor().extract(raw, "cut short")

    assert result.shell.title == "Cut"
    assert [e.title for e in result.shell.table_of_contents] == ["A", "B"]
    assert "array_salvaged:table_of_contents" in result.warnings
    assert result.shell.first_section_content.startswith(DRAFT_MARKER)


def test_unterminated_string_is_recovered_with_warning() -> None:
    raw = '{"main_title": "X", "chapter_1_content": "Once upon a ti'

    result = ShellExtractor().extract(raw, "stories")

    assert "no_json_object" in result.warnings
    assert "truncated_field:first_section_content" in result.warnings
    assert result.shell.first_section_content == "Once upon a ti"
    assert result.shell.title == "X"


def test_outline_with_duplicate_indices_is_reindexed() -> None:
    payload = _full_payload()
    payload["chapters"] = [
        {"chapter_number": 1, "title": "a"},
        {"chapter_number": 1, "title": "b"},
        {"chapter_number": 5, "title": "c"},
    ]

    result = ShellExtractor().extract(json.dumps(payload), "x")

    assert "outline_reindexed" in result.warnings
    assert [(e.index, e.title) for e in result.shell.table_of_contents] == [(1, "a"), (2, "b"), (3, "c")]


def test_outline_permutation_is_sorted_silently() -> None:
    payload = _full_payload()
    payload["chapters"] = [
        {"chapter_number": 2, "title": "second"},
        {"chapter_number": 1, "title": "first"},
        {"chapter_number": 3, "title": "third"},
    ]

    result = ShellExtractor().extract(json.dumps(payload), "x")

    assert result.warnings == []
    assert [e.title for e in result.shell.table_of_contents] == ["first", "second", "third"]


def test_top_level_array_is_not_an_object() -> None:
    result = ShellExtractor().extract("[1, 2, 3]", "numbers")

    assert "not_an_object" in result.warnings
    _assert_complete(result.shell)


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "{",
        "}",
        "{{{{",
        '{"main_title": "',
        '{"chapters": [[[[',
        '"\\',
        '{"chapters": "not a list", "main_title": 5}',
        '{"main_title": "a" "subtitle": "b"}',
        '{"chapters": [{"title": ""}, {"title": null}, 7, "Loose title"]}',
        '{"a": "\\"\\"\\"\\"", "main_title": "q\\\\"}',
        "[" * 20000 + "]" * 20000,
        '{"chapter_1_content": "' + "x" * 50000,
    ],
)
def test_adversarial_inputs_never_raise(raw: str) -> None:
    """Whatever comes back, extraction must produce a complete shell."""

    result = ShellExtractor(section_count=4).extract(raw, "adversarial topic")

    _assert_complete(result.shell)
    assert result.shell.warnings == result.warnings


def test_truncated_emoji_escape_can_be_stored(tmp_path) -> None:
    """A lone surrogate from a cut-off escape must not make the shell unwritable."""

    raw = json.dumps(_full_payload()).replace('"Tokyo Nights"', '"Tokyo Nights \\ud83d"')
    raw = raw.replace('"Where the City Eats After Dark"', '"After Dark \\ud83c\\udf03"')

    shell = ShellExtractor().extract(raw, "tokyo").shell

    assert shell.title == "Tokyo Nights \ufffd"
    assert shell.subtitle == "After Dark \U0001f303"

    gateway = FileGateway(tmp_path)
    asyncio.run(gateway.upsert_shell("doc-emoji", shell))
    stored = asyncio.run(gateway.get_document("doc-emoji"))
    assert stored.shell.title == "Tokyo Nights \ufffd"


def test_lone_surrogates_in_recovered_fields() -> None:
    raw = '{"main_title": "Sunny \\ud83d", "chapter_1_content": "Body \\ud83d'

    shell = ShellExtractor().extract(raw, "sunny days").shell

    assert shell.title == "Sunny \ufffd"
    assert shell.first_section_content == "Body \ufffd"
