"""Error taxonomy.

Every error carries two messages: the exception message is for logs and
diagnostics, ``user_message`` is what a caller is shown.
"""

from __future__ import annotations

from enum import Enum


class FailureClass(str, Enum):
    """Failure classes reported by the generation client."""

    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    TERMINAL = "terminal"


class BookloomError(Exception):
    """Base class for all errors raised by bookloom."""

    http_status = 500
    default_user_message = "Something went wrong while generating your book."

    def __init__(self, message: str, *, user_message: str | None = None) -> None:
        super().__init__(message)
        self.user_message = user_message or self.default_user_message


class InvalidInput(BookloomError):
    """Request failed validation; no backend call was made."""

    http_status = 400
    default_user_message = "The request is invalid."


class SafetyRejected(BookloomError):
    """The safety gate refused the topic."""

    http_status = 422
    default_user_message = "This topic cannot be processed."

    def __init__(self, message: str, *, reason: str | None = None, user_message: str | None = None) -> None:
        super().__init__(message, user_message=user_message)
        self.reason = reason


class UpstreamError(BookloomError):
    """The generation backend failed."""

    http_status = 502
    default_user_message = "The writing service is unavailable. Please try again later."

    def __init__(
        self,
        message: str,
        *,
        failure: FailureClass,
        status_code: int | None = None,
        attempts: int = 1,
        user_message: str | None = None,
    ) -> None:
        super().__init__(message, user_message=user_message)
        self.failure = failure
        self.status_code = status_code
        self.attempts = attempts


class UpstreamRetryable(UpstreamError):
    """A retryable failure that survived every retry."""


class UpstreamRateLimited(UpstreamRetryable):
    http_status = 429
    default_user_message = "The Loom is busy. Please wait and try again."


class UpstreamTimeout(UpstreamRetryable):
    http_status = 504
    default_user_message = "The writing service took too long to respond. Please try again."


class UpstreamTerminal(UpstreamError):
    """A non-retryable backend failure, surfaced on the first occurrence."""


class SectionGenerationFailed(BookloomError):
    """A background section could not be produced.

    Only ever recorded against the section; never reaches a caller.
    """

    def __init__(self, message: str, *, index: int, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.index = index
        self.cause = cause


class PersistenceError(BookloomError):
    """The persistence gateway rejected a read or write."""

    http_status = 503
    default_user_message = "Your book could not be saved. Please try again."


def upstream_error_for(
    failure: FailureClass,
    message: str,
    *,
    status_code: int | None,
    attempts: int,
) -> UpstreamError:
    """Build the taxonomy error matching a failure class."""

    if failure is FailureClass.RATE_LIMITED:
        cls: type[UpstreamError] = UpstreamRateLimited
    elif failure is FailureClass.TIMEOUT:
        cls = UpstreamTimeout
    else:
        cls = UpstreamTerminal
    return cls(message, failure=failure, status_code=status_code, attempts=attempts)
