"""Pydantic models used across the project."""

from __future__ import annotations

from bookloom.models.classification import SafetyVerdict, TopicCategory, TopicClassification
from bookloom.models.document import Document
from bookloom.models.request import GenerationRequest
from bookloom.models.section import BurstPlan, SectionRecord, SectionStatus, SectionTask
from bookloom.models.shell import AuxiliaryResource, DocumentShell, OutlineEntry

__all__ = [
    "AuxiliaryResource",
    "BurstPlan",
    "Document",
    "DocumentShell",
    "GenerationRequest",
    "OutlineEntry",
    "SafetyVerdict",
    "SectionRecord",
    "SectionStatus",
    "SectionTask",
    "TopicCategory",
    "TopicClassification",
]
