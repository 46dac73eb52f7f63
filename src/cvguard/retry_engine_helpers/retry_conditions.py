"""Retry predicates: which failures count as transient for each operation class."""

from __future__ import annotations

import re
from typing import Dict

from ..errors import RateLimitExceededError, SessionInvalidError, ValidationFailureError
from ..network_errors import http_status_of, is_network_unreachable_error
from .types import OperationType, RetryCondition

# Terminal signals; no predicate can make these retryable.
NON_RETRYABLE_ERRORS = (RateLimitExceededError, SessionInvalidError, ValidationFailureError)

DEFAULT_RETRY_KEYWORDS = ("networkerror", "timeouterror", "fetch", "timeout", "network", "connection")

_SERVER_ERROR_STATUS = re.compile(r"\b5\d\d\b")


def error_message(error: BaseException) -> str:
    return str(error).lower()


def message_contains(*keywords: str) -> RetryCondition:
    """Build a predicate matching any of ``keywords`` in the lowercased message."""
    needles = tuple(keyword.lower() for keyword in keywords)

    def condition(error: BaseException) -> bool:
        message = error_message(error)
        return any(needle in message for needle in needles)

    condition.__name__ = f"message_contains({', '.join(needles)})"
    return condition


def is_server_error(error: BaseException) -> bool:
    status = http_status_of(error)
    if status is not None:
        return 500 <= status < 600
    return bool(_SERVER_ERROR_STATUS.search(str(error)))


def is_transient_error(error: BaseException) -> bool:
    """Default predicate: transport failures, 5xx responses and network-flavoured messages."""
    if isinstance(error, NON_RETRYABLE_ERRORS):
        return False
    if is_network_unreachable_error(error) or is_server_error(error):
        return True
    message = error_message(error)
    return any(keyword in message for keyword in DEFAULT_RETRY_KEYWORDS)


def always_retry(error: BaseException) -> bool:
    return True


_upload_condition = message_contains("network", "timeout", "connection", "fetch")
_download_condition = message_contains("network", "timeout", "generation failed", "storage")


def _upload_retryable(error: BaseException) -> bool:
    return is_network_unreachable_error(error) or _upload_condition(error)


def _download_retryable(error: BaseException) -> bool:
    return is_network_unreachable_error(error) or _download_condition(error)


RETRY_CONDITIONS: Dict[OperationType, RetryCondition] = {
    OperationType.UPLOAD: _upload_retryable,
    OperationType.ANALYSIS: message_contains("timeout", "service unavailable", "rate limit", "502", "503", "504"),
    OperationType.EDIT: message_contains("timeout", "service unavailable", "rate limit"),
    OperationType.DOWNLOAD: _download_retryable,
    OperationType.NETWORK: always_retry,
}


__all__ = [
    "DEFAULT_RETRY_KEYWORDS",
    "NON_RETRYABLE_ERRORS",
    "RETRY_CONDITIONS",
    "always_retry",
    "error_message",
    "is_server_error",
    "is_transient_error",
    "message_contains",
]
