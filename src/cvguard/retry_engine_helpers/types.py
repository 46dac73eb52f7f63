"""Type definitions for the retry engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_MS = 1000.0
DEFAULT_MAX_DELAY_MS = 10000.0
DEFAULT_BACKOFF_MULTIPLIER = 2.0
DEFAULT_JITTER_MS = 1000.0

RetryCondition = Callable[[BaseException], bool]
RetryCallback = Callable[[int, BaseException], None]
ExhaustedCallback = Callable[[BaseException], None]


class OperationType(Enum):
    """Operation classes with their own retry policy."""

    UPLOAD = "upload"
    ANALYSIS = "analysis"
    EDIT = "edit"
    DOWNLOAD = "download"
    NETWORK = "network"


@dataclass(frozen=True)
class RetryConfig:
    """Exponential backoff policy.

    ``retry_condition`` decides whether a failure is transient; ``None``
    selects ``is_transient_error``. ``on_retry`` runs before each wait with
    the 1-based number of the attempt that just failed.
    ``on_max_attempts_reached`` runs once when the final allowed attempt
    fails with a retryable error.
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay_ms: float = DEFAULT_BASE_DELAY_MS
    max_delay_ms: float = DEFAULT_MAX_DELAY_MS
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    jitter_ms: float = DEFAULT_JITTER_MS
    retry_condition: Optional[RetryCondition] = None
    on_retry: Optional[RetryCallback] = None
    on_max_attempts_reached: Optional[ExhaustedCallback] = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1 (got {self.max_attempts})")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0 or self.jitter_ms < 0:
            raise ValueError("Retry delays must not be negative")
        if self.backoff_multiplier < 1:
            raise ValueError(f"backoff_multiplier must be >= 1 (got {self.backoff_multiplier})")


@dataclass
class RetryAttempt:
    """One failed attempt inside a single ``retry_operation`` call."""

    attempt_number: int
    last_error: BaseException
    computed_delay_ms: Optional[float] = None


__all__ = [
    "DEFAULT_BACKOFF_MULTIPLIER",
    "DEFAULT_BASE_DELAY_MS",
    "DEFAULT_JITTER_MS",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_MAX_DELAY_MS",
    "ExhaustedCallback",
    "OperationType",
    "RetryAttempt",
    "RetryCallback",
    "RetryCondition",
    "RetryConfig",
]
