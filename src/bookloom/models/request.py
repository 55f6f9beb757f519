"""Generation request model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from bookloom.errors import InvalidInput

TOPIC_MAX_CHARS = 200
SESSION_TOKEN_MIN_CHARS = 10

LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "zh": "Chinese",
    "ja": "Japanese",
}


class GenerationRequest(BaseModel):
    """A validated request to generate a document from a topic."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    topic: str = Field(min_length=1, max_length=TOPIC_MAX_CHARS)
    session_token: str = Field(min_length=SESSION_TOKEN_MIN_CHARS, alias="sessionToken")
    full_document_requested: bool = Field(default=True, alias="fullDocumentRequested")
    existing_document_id: str | None = Field(default=None, alias="existingDocumentId")
    language: str = Field(default="en")

    @field_validator("topic")
    @classmethod
    def _topic_not_blank(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("topic must not be blank")
        return stripped

    @field_validator("session_token")
    @classmethod
    def _token_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("session token must not be blank")
        return value

    @field_validator("language")
    @classmethod
    def _known_language(cls, value: str) -> str:
        code = value.strip().lower()
        return code if code in LANGUAGE_NAMES else "en"

    @property
    def language_name(self) -> str:
        return LANGUAGE_NAMES[self.language]

    @classmethod
    def parse_input(cls, data: dict[str, Any]) -> "GenerationRequest":
        """Validate raw caller input.

        Raises:
            InvalidInput: With a caller-facing message naming the first bad field.
        """

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ())) or "request"
            raise InvalidInput(
                f"request validation failed: {exc}",
                user_message=_user_message_for(field),
            ) from exc


def _user_message_for(field: str) -> str:
    if field == "topic":
        return f"Please enter a topic between 1 and {TOPIC_MAX_CHARS} characters."
    if field in {"session_token", "sessionToken"}:
        return "Your session is missing or invalid. Please refresh and try again."
    return f"Invalid value for '{field}'."
