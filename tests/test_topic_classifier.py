"""Tests for the heuristic topic classifier and keyword tables."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from bookloom.classification import TopicClassifier, load_keyword_tables
from bookloom.models.classification import TopicCategory


def test_fasting_schedule_is_lifestyle(tables) -> None:
    result = TopicClassifier(tables).classify("Intermittent Fasting 16:8 Schedule")

    assert result.category is TopicCategory.LIFESTYLE
    assert result.matched_pattern == "fasting"
    assert result.subtitle == "A Comprehensive Guide to Intermittent Fasting 16:8 Schedule"


@pytest.mark.parametrize(
    ("topic", "category"),
    [
        ("Python for Data Science", TopicCategory.TECHNICAL),
        ("Home Solar Panels Wiring", TopicCategory.TECHNICAL),
        ("The Philosophy of Stoicism", TopicCategory.ACADEMIC),
        ("Weekend Trip to Lisbon", TopicCategory.LIFESTYLE),
        ("Raising Backyard Chickens", TopicCategory.LIFESTYLE),
    ],
)
def test_category_order(tables, topic: str, category: TopicCategory) -> None:
    assert TopicClassifier(tables).classify(topic).category is category


def test_technical_wins_over_lifestyle(tables) -> None:
    """Technical patterns are checked first, so a mixed topic is technical."""

    result = TopicClassifier(tables).classify("Home Wiring Repair")

    assert result.category is TopicCategory.TECHNICAL
    assert result.subtitle == "A Practical Technical Manual for Home Wiring Repair"


def test_unmatched_topic_defaults_to_lifestyle(tables) -> None:
    result = TopicClassifier(tables).classify("Zzyzx")

    assert result.category is TopicCategory.LIFESTYLE
    assert result.matched_pattern is None


def test_classification_is_deterministic(tables) -> None:
    classifier = TopicClassifier(tables)

    assert classifier.classify("Paris Travel Guide") == classifier.classify("Paris Travel Guide")


def test_visual_topics(tables) -> None:
    classifier = TopicClassifier(tables)

    assert classifier.classify("Paris Travel Guide").is_visual
    assert classifier.classify("Street Photography Basics").is_visual
    assert not classifier.classify("Tax Law Fundamentals").is_visual


def test_subtitle_drops_guide_filler(tables) -> None:
    result = TopicClassifier(tables).classify("kyoto travel guide")

    assert result.subtitle == "A Comprehensive Guide to Kyoto"


def test_allow_list_uses_word_boundaries(tables) -> None:
    assert tables.match_allow_list("Herbal Tea Blending") == ("food_cooking", "tea")
    assert tables.match_allow_list("Steady Streams") is None


def test_trademark_watchlist(tables) -> None:
    assert tables.match_trademarks("Lego Star Wars Builds") == ["star wars", "lego"]
    assert tables.match_trademarks("Legal Writing") == []


def test_custom_table_file(tmp_path: Path) -> None:
    path = tmp_path / "tables.json"
    path.write_text(
        json.dumps(
            {
                "safety_allow_list": {"pets": ["cats"]},
                "topic_patterns": {"technical": [], "academic": [], "lifestyle": []},
                "subtitles": {"lifestyle": "All About {topic}"},
            }
        ),
        encoding="utf-8",
    )

    tables = load_keyword_tables(path)
    result = TopicClassifier(tables).classify("cats")

    assert tables.match_allow_list("my cats") == ("pets", "cats")
    assert result.subtitle == "All About Cats"


def test_invalid_pattern_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "tables.json"
    path.write_text(json.dumps({"topic_patterns": {"technical": ["(unclosed"]}}), encoding="utf-8")

    with pytest.raises(ValidationError):
        load_keyword_tables(path)
