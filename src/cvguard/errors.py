"""Error taxonomy surfaced by the resilience layer.

Every error carries a stable ``code`` so callers can branch without matching
on message text. A transient error that outlives its retries is rethrown as
itself, tagged with ``retry_code`` and its attempt count.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from .rate_limiter_helpers.types import RateLimitResult
    from .retry_engine_helpers.types import RetryAttempt
    from .session_registry_helpers.models import SessionSecurityInfo

RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
SESSION_INVALID = "SESSION_INVALID"
VALIDATION_FAILED = "VALIDATION_FAILED"
STORE_ERROR = "STORE_ERROR"

RETRY_CODE_ATTR = "retry_code"

INVALID_SESSION_MESSAGE = "Invalid or expired session. Please refresh the page."


class CvGuardError(RuntimeError):
    """Base class for resilience layer failures."""

    code = "CVGUARD_ERROR"


class RateLimitExceededError(CvGuardError):
    """Raised when a caller converts a blocked rate-limit result into an error."""

    code = RATE_LIMIT_EXCEEDED

    def __init__(self, result: "RateLimitResult", message: Optional[str] = None) -> None:
        from .rate_limiter_helpers.formatting import format_rate_limit_message

        super().__init__(message or format_rate_limit_message(result))
        self.result = result
        self.retry_after_ms = result.retry_after_ms

    @classmethod
    def from_result(cls, result: "RateLimitResult") -> "RateLimitExceededError":
        return cls(result)


def tag_retry_exhausted(
    error: BaseException,
    attempts: int,
    history: Optional[Sequence["RetryAttempt"]] = None,
) -> BaseException:
    """Attach retry bookkeeping to ``error`` so it can be rethrown unchanged.

    Sets ``retry_code``, ``attempts`` and ``retry_history``; an existing
    ``code`` attribute on the error is left as it was.
    """
    setattr(error, RETRY_CODE_ATTR, RETRY_EXHAUSTED)
    setattr(error, "attempts", attempts)
    setattr(error, "retry_history", list(history or ()))
    return error


def is_retry_exhausted(error: BaseException) -> bool:
    return getattr(error, RETRY_CODE_ATTR, None) == RETRY_EXHAUSTED


class SessionInvalidError(CvGuardError):
    """Raised when a session fails its security validation."""

    code = SESSION_INVALID

    def __init__(self, session_id: Optional[str], info: Optional["SessionSecurityInfo"] = None) -> None:
        super().__init__(INVALID_SESSION_MESSAGE)
        self.session_id = session_id
        self.info = info

    @property
    def warnings(self) -> List[str]:
        return list(self.info.warnings) if self.info else []


class ValidationFailureError(CvGuardError, ValueError):
    """Raised when input is rejected before reaching the guarded action."""

    code = VALIDATION_FAILED

    def __init__(self, errors: Sequence[str], *, field: Optional[str] = None) -> None:
        self.errors = list(errors)
        self.field = field
        prefix = f"{field}: " if field else ""
        super().__init__(prefix + ("; ".join(self.errors) or "Invalid input data provided."))


class StoreError(CvGuardError):
    """Raised when the persisted key-value store cannot complete an operation."""

    code = STORE_ERROR

    def __init__(self, operation: str, key: str, original: Optional[BaseException] = None) -> None:
        message = f"Store {operation} failed for key {key!r}"
        if original is not None:
            message = f"{message}: {original}"
        super().__init__(message)
        self.operation = operation
        self.key = key
        self.original = original


__all__ = [
    "CvGuardError",
    "INVALID_SESSION_MESSAGE",
    "RATE_LIMIT_EXCEEDED",
    "RETRY_CODE_ATTR",
    "RETRY_EXHAUSTED",
    "RateLimitExceededError",
    "SESSION_INVALID",
    "STORE_ERROR",
    "SessionInvalidError",
    "StoreError",
    "VALIDATION_FAILED",
    "ValidationFailureError",
    "is_retry_exhausted",
    "tag_retry_exhausted",
]
