"""Helper modules for the retry engine."""

from .presets import RETRY_CONFIGS
from .retry_conditions import NON_RETRYABLE_ERRORS, is_transient_error, message_contains
from .types import OperationType, RetryAttempt, RetryConfig

__all__ = [
    "NON_RETRYABLE_ERRORS",
    "OperationType",
    "RETRY_CONFIGS",
    "RetryAttempt",
    "RetryConfig",
    "is_transient_error",
    "message_contains",
]
