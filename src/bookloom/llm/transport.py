"""Backend transports.

A transport performs exactly one HTTP exchange with a text-generation backend
and reports the status code it got back. Retry, backoff and timeout policy
live in :mod:`bookloom.llm.client`, never here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Protocol, Sequence

import httpx
from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI

from bookloom.config import Settings
from bookloom.logging import get_logger

logger = get_logger(__name__)

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    """A chat message."""

    role: Role
    content: str


@dataclass(frozen=True)
class BackendRequest:
    """Prompt plus generation parameters for one backend call."""

    messages: Sequence[ChatMessage]
    temperature: float = 0.7
    max_output_tokens: int = 8192
    json_mode: bool = False


@dataclass(frozen=True)
class BackendResponse:
    """Raw backend answer. ``status_code`` follows HTTP semantics."""

    status_code: int
    text: str = ""
    error: str | None = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class TransportTimeout(Exception):
    """The backend did not answer within the transport's own deadline."""


class GenerationTransport(Protocol):
    """Transport interface."""

    async def send(self, request: BackendRequest) -> BackendResponse:
        """Perform one backend call."""


class OpenAITransport:
    """OpenAI-compatible Chat Completions transport."""

    def __init__(self, settings: Settings, *, client: AsyncOpenAI | None = None) -> None:
        if client is None and not settings.openai_api_key:
            raise ValueError(
                "Missing BOOKLOOM_OPENAI_API_KEY. "
                "Set it in environment variables or a .env file."
            )
        self._model = settings.openai_model
        self._client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            max_retries=0,  # retries are owned by GenerationClient
            timeout=settings.generation_timeout_s,
        )

    async def send(self, request: BackendRequest) -> BackendResponse:
        payload = [{"role": m.role, "content": m.content} for m in request.messages]
        kwargs: dict[str, object] = {}
        if request.json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            resp = await self._client.chat.completions.create(
                model=self._model,
                messages=payload,
                temperature=request.temperature,
                max_tokens=request.max_output_tokens,
                **kwargs,
            )
        except APITimeoutError as e:
            raise TransportTimeout(str(e)) from e
        except APIStatusError as e:
            return BackendResponse(status_code=e.status_code, error=str(e.message))
        except APIConnectionError as e:
            return BackendResponse(status_code=503, error=f"connection error: {e}")

        choice = resp.choices[0] if resp.choices else None
        if choice is None or not choice.message or choice.message.content is None:
            return BackendResponse(status_code=200, text="")
        return BackendResponse(status_code=200, text=choice.message.content)


class GeminiTransport:
    """Gemini ``generateContent`` REST transport."""

    def __init__(self, settings: Settings, *, client: httpx.AsyncClient | None = None) -> None:
        if not settings.gemini_api_key:
            raise ValueError(
                "Missing BOOKLOOM_GEMINI_API_KEY while backend=gemini. "
                "Set it in environment variables or .env."
            )
        self._api_key = settings.gemini_api_key
        self._url = f"{settings.gemini_base_url.rstrip('/')}/models/{settings.gemini_model}:generateContent"
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(settings.generation_timeout_s))

    async def send(self, request: BackendRequest) -> BackendResponse:
        system = "\n\n".join(m.content for m in request.messages if m.role == "system")
        turns = [
            {"role": "model" if m.role == "assistant" else "user", "parts": [{"text": m.content}]}
            for m in request.messages
            if m.role != "system"
        ]
        generation_config: dict[str, object] = {
            "temperature": request.temperature,
            "maxOutputTokens": request.max_output_tokens,
        }
        if request.json_mode:
            generation_config["response_mime_type"] = "application/json"
        body: dict[str, object] = {"contents": turns, "generationConfig": generation_config}
        if system:
            body["systemInstruction"] = {"parts": [{"text": system}]}

        try:
            resp = await self._client.post(self._url, params={"key": self._api_key}, json=body)
        except httpx.TimeoutException as e:
            raise TransportTimeout(str(e)) from e
        except httpx.RequestError as e:
            return BackendResponse(status_code=503, error=f"request error: {e}")

        headers = {k.lower(): v for k, v in resp.headers.items()}
        if resp.status_code >= 400:
            return BackendResponse(status_code=resp.status_code, error=resp.text[:500], headers=headers)

        try:
            data = resp.json()
        except ValueError:
            return BackendResponse(status_code=resp.status_code, text=resp.text, headers=headers)

        if isinstance(data, dict) and data.get("error"):
            err = data["error"]
            code = err.get("code", 500) if isinstance(err, dict) else 500
            message = err.get("message") if isinstance(err, dict) else str(err)
            return BackendResponse(status_code=int(code), error=message, headers=headers)

        return BackendResponse(status_code=resp.status_code, text=_gemini_text(data), headers=headers)

    async def aclose(self) -> None:
        await self._client.aclose()


def _gemini_text(data: object) -> str:
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))


def get_transport(settings: Settings) -> GenerationTransport:
    """Factory to create a transport based on settings."""

    if settings.backend == "gemini":
        return GeminiTransport(settings)
    return OpenAITransport(settings)
