"""Helper modules for the fixed-window rate limiter."""

from .formatting import format_rate_limit_message
from .keys import build_rate_limit_key
from .types import DEFAULT_RATE_LIMIT_CONFIGS, Endpoint, RateLimitConfig, RateLimitEntry, RateLimitResult

__all__ = [
    "DEFAULT_RATE_LIMIT_CONFIGS",
    "Endpoint",
    "RateLimitConfig",
    "RateLimitEntry",
    "RateLimitResult",
    "build_rate_limit_key",
    "format_rate_limit_message",
]
