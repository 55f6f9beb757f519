"""Intent safety gate.

A topic on the allow-list is accepted without a backend call. Anything else
gets exactly one classifier call. When that call or its parsing fails the
gate fails open: availability is preferred over strictness.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from bookloom.classification.tables import KeywordTables
from bookloom.extraction.sanitize import json_candidate, sanitize_text
from bookloom.llm.client import GenerationClient, PromptPayload
from bookloom.llm.transport import ChatMessage
from bookloom.logging import get_logger
from bookloom.models.classification import SafetyVerdict
from bookloom.prompts import SAFETY_SYSTEM_PROMPT, build_safety_prompt
from bookloom.utils.text import truncate

logger = get_logger(__name__)

_MAX_OUTPUT_TOKENS = 256
_MAX_REASON_CHARS = 500


class _ClassifierAnswer(BaseModel):
    """Strict two-field answer expected from the classifier."""

    allowed: bool
    reason: str | None = None

    @field_validator("reason", mode="before")
    @classmethod
    def _clip_reason(cls, reason: Any) -> str | None:
        # Only "allowed" decides the verdict; the reason never invalidates an answer.
        if reason is None:
            return None
        return truncate(str(reason), _MAX_REASON_CHARS)


class SafetyGate:
    """Decide whether a topic may be processed at all."""

    def __init__(
        self,
        client: GenerationClient,
        tables: KeywordTables,
        *,
        timeout_s: float = 15.0,
        enabled: bool = True,
    ) -> None:
        self._client = client
        self._tables = tables
        self._timeout_s = timeout_s
        self._enabled = enabled

    async def evaluate(self, topic: str) -> SafetyVerdict:
        if not self._enabled:
            return SafetyVerdict(allowed=True, reason="safety gate disabled", source="disabled")

        hit = self._tables.match_allow_list(topic)
        if hit is not None:
            category, keyword = hit
            logger.info("Safety allow-list hit", extra={"category": category, "keyword": keyword})
            return SafetyVerdict(allowed=True, reason=f"allow_list:{category}", source="allow_list")

        payload = PromptPayload(
            messages=[
                ChatMessage(role="system", content=SAFETY_SYSTEM_PROMPT),
                ChatMessage(role="user", content=build_safety_prompt(topic)),
            ],
            temperature=0.0,
            json_mode=True,
        )
        outcome = await self._client.generate(
            payload,
            _MAX_OUTPUT_TOKENS,
            timeout_s=self._timeout_s,
            max_retries=0,
        )
        if not outcome.ok:
            logger.warning(
                "Safety classifier unavailable; failing open",
                extra={"failure": outcome.failure.value if outcome.failure else None, "error": outcome.error},
            )
            return SafetyVerdict(allowed=True, reason=f"classifier_unavailable:{outcome.failure.value}", source="fail_open")

        answer = self._parse_answer(outcome.text)
        if answer is None:
            return SafetyVerdict(allowed=True, reason="classifier_unparseable", source="fail_open")

        verdict = SafetyVerdict(allowed=answer.allowed, reason=answer.reason, source="classifier")
        logger.info("Safety verdict", extra={"allowed": verdict.allowed, "reason": verdict.reason})
        return verdict

    @staticmethod
    def _parse_answer(raw: str) -> _ClassifierAnswer | None:
        candidate = json_candidate(sanitize_text(raw))
        if candidate is None:
            logger.warning("Failed to parse safety classifier output; failing open. Raw=%s", raw[:300])
            return None
        try:
            return _ClassifierAnswer.model_validate(json.loads(candidate))
        except (json.JSONDecodeError, ValidationError):
            logger.warning("Failed to validate safety classifier JSON; failing open. Raw=%s", raw[:300])
            return None
