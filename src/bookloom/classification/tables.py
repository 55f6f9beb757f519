"""Static keyword tables.

The safety allow-list, trademark watchlist, topic patterns and visual-topic
keywords are data, not logic. They ship as ``bookloom/data/keyword_tables.json``
and can be replaced wholesale through ``BOOKLOOM_KEYWORD_TABLES_PATH``.
"""

from __future__ import annotations

import json
import re
from functools import cached_property
from importlib import resources
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bookloom.logging import get_logger

logger = get_logger(__name__)

_PACKAGED_TABLES = "keyword_tables.json"


def _word_pattern(phrase: str) -> re.Pattern[str]:
    return re.compile(r"\b" + re.escape(phrase.lower()) + r"\b")


class TopicPatterns(BaseModel):
    technical: list[str] = Field(default_factory=list)
    academic: list[str] = Field(default_factory=list)
    lifestyle: list[str] = Field(default_factory=list)

    @field_validator("technical", "academic", "lifestyle")
    @classmethod
    def _compiles(cls, patterns: list[str]) -> list[str]:
        for p in patterns:
            try:
                re.compile(p)
            except re.error as e:
                raise ValueError(f"invalid topic pattern {p!r}: {e}") from e
        return patterns


class KeywordTables(BaseModel):
    """Validated keyword tables."""

    model_config = ConfigDict(frozen=True)

    safety_allow_list: dict[str, list[str]] = Field(default_factory=dict)
    trademark_watchlist: list[str] = Field(default_factory=list)
    topic_patterns: TopicPatterns = Field(default_factory=TopicPatterns)
    subtitles: dict[str, str] = Field(default_factory=dict)
    visual_keywords: list[str] = Field(default_factory=list)
    synthetic_outline: list[str] = Field(default_factory=list)

    @cached_property
    def allow_list_patterns(self) -> list[tuple[str, str, re.Pattern[str]]]:
        """(category, keyword, pattern) triples in table order."""

        return [
            (category, kw, _word_pattern(kw))
            for category, keywords in self.safety_allow_list.items()
            for kw in keywords
        ]

    @cached_property
    def trademark_patterns(self) -> list[tuple[str, re.Pattern[str]]]:
        return [(term, _word_pattern(term)) for term in self.trademark_watchlist]

    def compiled_topic_patterns(self, category: str) -> list[re.Pattern[str]]:
        return [re.compile(p, re.IGNORECASE) for p in getattr(self.topic_patterns, category)]

    def match_allow_list(self, topic: str) -> tuple[str, str] | None:
        """Return ``(category, keyword)`` of the first allow-list hit."""

        lower = topic.lower()
        for category, kw, pattern in self.allow_list_patterns:
            if pattern.search(lower):
                return category, kw
        return None

    def match_trademarks(self, topic: str) -> list[str]:
        lower = topic.lower()
        return [term for term, pattern in self.trademark_patterns if pattern.search(lower)]

    def is_visual(self, topic: str) -> bool:
        lower = topic.lower()
        return any(re.search(r"\b" + re.escape(kw), lower) for kw in self.visual_keywords)


def load_keyword_tables(path: Path | None = None) -> KeywordTables:
    """Load keyword tables from ``path`` or from the packaged default."""

    if path is not None:
        raw = Path(path).read_text(encoding="utf-8")
        source = str(path)
    else:
        raw = resources.files("bookloom.data").joinpath(_PACKAGED_TABLES).read_text(encoding="utf-8")
        source = f"package:{_PACKAGED_TABLES}"

    tables = KeywordTables.model_validate(json.loads(raw))
    logger.debug(
        "Keyword tables loaded",
        extra={
            "source": source,
            "allow_list_categories": len(tables.safety_allow_list),
            "trademarks": len(tables.trademark_watchlist),
        },
    )
    return tables
