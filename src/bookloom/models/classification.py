"""Safety verdict and topic classification models."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict


class SafetyVerdict(BaseModel):
    """Outcome of the safety gate. Produced once per request."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str | None = None
    source: Literal["allow_list", "classifier", "fail_open", "disabled"] = "classifier"


class TopicCategory(str, Enum):
    TECHNICAL = "technical"
    LIFESTYLE = "lifestyle"
    ACADEMIC = "academic"


class TopicClassification(BaseModel):
    """Heuristic category selecting the prompt template and subtitle."""

    model_config = ConfigDict(frozen=True)

    category: TopicCategory
    subtitle: str
    matched_pattern: str | None = None
    is_visual: bool = False
