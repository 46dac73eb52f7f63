"""User-facing text for blocked requests."""

import math

from .types import RateLimitResult


def format_rate_limit_message(result: RateLimitResult) -> str:
    retry_after_seconds = math.ceil(result.retry_after_ms / 1000) if result.retry_after_ms else 0

    if retry_after_seconds > 60:
        minutes = math.ceil(retry_after_seconds / 60)
        unit = "minute" if minutes == 1 else "minutes"
        return f"Too many requests. Please try again in {minutes} {unit}."
    unit = "second" if retry_after_seconds == 1 else "seconds"
    return f"Too many requests. Please try again in {retry_after_seconds} {unit}."
