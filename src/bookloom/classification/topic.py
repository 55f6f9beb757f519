"""Heuristic topic classifier.

Pure and deterministic: technical patterns are tried first, then academic,
then lifestyle. Anything unmatched is lifestyle.
"""

from __future__ import annotations

import re

from bookloom.classification.tables import KeywordTables
from bookloom.models.classification import TopicCategory, TopicClassification
from bookloom.utils.text import clean_topic, title_case

_ORDER = (TopicCategory.TECHNICAL, TopicCategory.ACADEMIC, TopicCategory.LIFESTYLE)

_DEFAULT_SUBTITLES = {
    TopicCategory.TECHNICAL: "A Practical Technical Manual for {topic}",
    TopicCategory.ACADEMIC: "A Scholarly Introduction to {topic}",
    TopicCategory.LIFESTYLE: "A Comprehensive Guide to {topic}",
}


class TopicClassifier:
    """Select a prompt template category for a topic."""

    def __init__(self, tables: KeywordTables) -> None:
        self._tables = tables
        self._patterns: list[tuple[TopicCategory, list[re.Pattern[str]]]] = [
            (category, tables.compiled_topic_patterns(category.value)) for category in _ORDER
        ]

    def classify(self, topic: str) -> TopicClassification:
        category = TopicCategory.LIFESTYLE
        matched: str | None = None
        for candidate, patterns in self._patterns:
            hit = next((m for m in (p.search(topic) for p in patterns) if m), None)
            if hit is not None:
                category = candidate
                matched = hit.group(0).lower()
                break

        template = self._tables.subtitles.get(category.value, _DEFAULT_SUBTITLES[category])
        return TopicClassification(
            category=category,
            subtitle=template.format(topic=title_case(clean_topic(topic))),
            matched_pattern=matched,
            is_visual=self._tables.is_visual(topic),
        )
