"""
Network error detection and classification.

Transport failures (connection refused, DNS, timeouts) are retryable by
default regardless of their message text. Application errors are left to the
message-based predicates in ``retry_engine_helpers.retry_conditions``.
"""

import asyncio
import socket
from typing import Optional

import aiohttp

NETWORK_ERROR_TYPES = (
    aiohttp.ClientConnectorError,
    aiohttp.ClientProxyConnectionError,
    aiohttp.ServerTimeoutError,
    aiohttp.ServerDisconnectedError,
    aiohttp.ClientPayloadError,
    asyncio.TimeoutError,
    socket.gaierror,
    ConnectionError,
    TimeoutError,
)


def is_network_unreachable_error(exception: BaseException) -> bool:
    """
    Determine if an exception represents a network connectivity failure.

    Args:
        exception: Exception to check

    Returns:
        True if this is a transport-level error rather than an application error
    """
    if isinstance(exception, NETWORK_ERROR_TYPES):
        return True

    os_error = getattr(exception, "os_error", None)
    if isinstance(os_error, OSError):
        return True

    cause = exception.__cause__
    return cause is not None and cause is not exception and isinstance(cause, NETWORK_ERROR_TYPES)


def http_status_of(exception: BaseException) -> Optional[int]:
    """Return the HTTP status carried by ``aiohttp.ClientResponseError`` style errors."""
    status = getattr(exception, "status", None)
    return status if isinstance(status, int) else None


__all__ = ["NETWORK_ERROR_TYPES", "http_status_of", "is_network_unreachable_error"]
