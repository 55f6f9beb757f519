"""Generation client with timeout, retry and exponential backoff.

The client is the only place that decides whether a backend failure is worth
another attempt. Callers receive a :class:`GenerationOutcome` whose
``failure`` field names the failure class; they never inspect status codes.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Sequence

from bookloom.config import Settings
from bookloom.errors import FailureClass, upstream_error_for
from bookloom.llm.transport import BackendRequest, ChatMessage, GenerationTransport, TransportTimeout
from bookloom.logging import get_logger
from bookloom.utils.text import replace_lone_surrogates

logger = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PromptPayload:
    """Prompt text plus sampling parameters."""

    messages: Sequence[ChatMessage]
    temperature: float = 0.7
    json_mode: bool = False


@dataclass
class GenerationOutcome:
    """Result of one logical generation, retries included."""

    text: str = ""
    failure: FailureClass | None = None
    status_code: int | None = None
    attempts: int = 0
    waits: list[float] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def raise_for_failure(self) -> None:
        """Raise the taxonomy error matching ``failure``; no-op on success."""

        if self.failure is None:
            return
        raise upstream_error_for(
            self.failure,
            f"generation failed ({self.failure.value}) after {self.attempts} attempt(s): {self.error}",
            status_code=self.status_code,
            attempts=self.attempts,
        )


def classify_status(status_code: int) -> FailureClass | None:
    """Map an HTTP-like status code to a failure class (``None`` for success)."""

    if 200 <= status_code < 300:
        return None
    if status_code == 429:
        return FailureClass.RATE_LIMITED
    if status_code in (408, 504):
        return FailureClass.TIMEOUT
    if status_code >= 500:
        return FailureClass.SERVER_ERROR
    return FailureClass.TERMINAL


class GenerationClient:
    """Single-call wrapper around a generation transport."""

    def __init__(
        self,
        transport: GenerationTransport,
        *,
        timeout_s: float = 90.0,
        max_retries: int = 3,
        backoff_base_s: float = 5.0,
        retry_on_server_error: bool = False,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            transport: Backend transport.
            timeout_s: Overall deadline for a single attempt.
            max_retries: Retries after the first attempt for retryable failures.
            backoff_base_s: First backoff wait; each further wait doubles it.
            retry_on_server_error: Treat 5xx as retryable instead of terminal.
            sleep: Awaitable sleep, injectable for deterministic tests.
        """
        self._transport = transport
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._backoff_base_s = backoff_base_s
        self._retry_on_server_error = retry_on_server_error
        self._sleep = sleep

        self._request_count = 0
        self._error_count = 0
        self._total_latency = 0.0

    @classmethod
    def from_settings(cls, settings: Settings, transport: GenerationTransport, *, sleep: SleepFn = asyncio.sleep) -> "GenerationClient":
        return cls(
            transport,
            timeout_s=settings.generation_timeout_s,
            max_retries=settings.generation_max_retries,
            backoff_base_s=settings.generation_backoff_base_s,
            retry_on_server_error=settings.retry_on_server_error,
            sleep=sleep,
        )

    def is_retryable(self, failure: FailureClass) -> bool:
        if failure in (FailureClass.RATE_LIMITED, FailureClass.TIMEOUT):
            return True
        return failure is FailureClass.SERVER_ERROR and self._retry_on_server_error

    def backoff_for(self, retry: int) -> float:
        """Wait before retry number ``retry`` (0-based)."""

        return self._backoff_base_s * (2**retry)

    async def generate(
        self,
        payload: PromptPayload,
        max_output_tokens: int,
        *,
        timeout_s: float | None = None,
        max_retries: int | None = None,
    ) -> GenerationOutcome:
        """Generate text, retrying rate limits and timeouts with backoff.

        Args:
            payload: Prompt and sampling parameters.
            max_output_tokens: Output size cap sent to the backend.
            timeout_s: Per-call override of the attempt deadline.
            max_retries: Per-call override of the retry ceiling.

        Returns:
            The outcome. Never raises for backend failures.
        """

        deadline = self._timeout_s if timeout_s is None else timeout_s
        retries = self._max_retries if max_retries is None else max_retries
        request = BackendRequest(
            messages=payload.messages,
            temperature=payload.temperature,
            max_output_tokens=max_output_tokens,
            json_mode=payload.json_mode,
        )

        outcome = GenerationOutcome()
        for attempt in range(retries + 1):
            outcome.attempts = attempt + 1
            started = time.monotonic()
            try:
                resp = await asyncio.wait_for(self._transport.send(request), timeout=deadline)
            except (asyncio.TimeoutError, TransportTimeout) as e:
                outcome.failure = FailureClass.TIMEOUT
                outcome.status_code = None
                outcome.error = f"timed out after {deadline:.0f}s" if isinstance(e, asyncio.TimeoutError) else str(e)
            else:
                self._request_count += 1
                self._total_latency += time.monotonic() - started
                failure = classify_status(resp.status_code)
                if failure is None:
                    outcome.text = replace_lone_surrogates(resp.text)
                    outcome.failure = None
                    outcome.status_code = resp.status_code
                    outcome.error = None
                    return outcome
                outcome.failure = failure
                outcome.status_code = resp.status_code
                outcome.error = resp.error or f"status {resp.status_code}"

            self._error_count += 1
            if not self.is_retryable(outcome.failure):
                logger.error(
                    "Generation failed with terminal error",
                    extra={"status_code": outcome.status_code, "failure": outcome.failure.value, "error": outcome.error},
                )
                return outcome

            if attempt >= retries:
                break

            wait_s = self.backoff_for(attempt)
            outcome.waits.append(wait_s)
            logger.warning(
                "Generation attempt failed, retrying",
                extra={
                    "attempt": attempt + 1,
                    "max_retries": retries,
                    "failure": outcome.failure.value,
                    "status_code": outcome.status_code,
                    "wait_s": wait_s,
                },
            )
            await self._sleep(wait_s)

        logger.error(
            "Generation failed after retries",
            extra={"attempts": outcome.attempts, "failure": outcome.failure.value, "error": outcome.error},
        )
        return outcome

    async def generate_text(
        self,
        payload: PromptPayload,
        max_output_tokens: int,
        *,
        timeout_s: float | None = None,
        max_retries: int | None = None,
    ) -> str:
        """Like :meth:`generate`, but raise the taxonomy error on failure."""

        outcome = await self.generate(payload, max_output_tokens, timeout_s=timeout_s, max_retries=max_retries)
        outcome.raise_for_failure()
        return outcome.text

    def get_metrics(self) -> dict[str, float | int]:
        """Get client metrics."""
        avg_latency = self._total_latency / self._request_count if self._request_count > 0 else 0.0
        return {
            "request_count": self._request_count,
            "error_count": self._error_count,
            "avg_latency_ms": avg_latency * 1000,
        }
