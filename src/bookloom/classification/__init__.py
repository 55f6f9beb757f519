"""Topic classification and keyword tables."""

from __future__ import annotations

from bookloom.classification.tables import KeywordTables, load_keyword_tables
from bookloom.classification.topic import TopicClassifier

__all__ = ["KeywordTables", "TopicClassifier", "load_keyword_tables"]
