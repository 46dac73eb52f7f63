"""Fixed-window-with-reset rate limiter for guarded client actions.

Each ``principal:endpoint`` key owns one counter. The counter is replaced
wholesale once its window has passed, so memory and update cost stay O(1)
per key. The trade-off is burstiness at window boundaries: a caller can
issue up to ``2 * max_requests`` across a boundary.

Exceeding the limit is a normal return value, never an exception; callers
convert it with ``RateLimitExceededError.from_result`` when they want one.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import fields, replace
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, Union

from .clock import Clock, SystemClock
from .errors import RateLimitExceededError, ValidationFailureError
from .rate_limiter_helpers import (
    DEFAULT_RATE_LIMIT_CONFIGS,
    Endpoint,
    RateLimitConfig,
    RateLimitEntry,
    RateLimitResult,
    build_rate_limit_key,
)
from .scheduling import PeriodicTask

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_MS = 60_000.0

T = TypeVar("T")


class RateLimiter:
    """Per-key fixed-window counters with a background sweep."""

    def __init__(
        self,
        clock: Optional[Clock] = None,
        endpoint_configs: Optional[Dict[Endpoint, RateLimitConfig]] = None,
        sweep_interval_ms: float = DEFAULT_SWEEP_INTERVAL_MS,
    ) -> None:
        self._clock = clock if clock is not None else SystemClock()
        self.endpoint_configs: Dict[Endpoint, RateLimitConfig] = dict(DEFAULT_RATE_LIMIT_CONFIGS)
        if endpoint_configs:
            self.endpoint_configs.update(endpoint_configs)
        self._entries: Dict[str, RateLimitEntry] = {}
        self._sweeper = PeriodicTask("rate-limit-sweep", sweep_interval_ms, self.sweep)
        self._total_checks = 0
        self._total_blocked = 0

    def check_limit(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        """Count one request against ``key`` and report whether it may proceed."""
        self._total_checks += 1
        now = self._clock.now_ms()
        entry = self._entries.get(key)

        if entry is None or now >= entry.reset_at:
            entry = RateLimitEntry(count=1, window_start=now, reset_at=now + config.window_ms)
            self._entries[key] = entry
            return RateLimitResult(allowed=True, remaining=config.max_requests - 1, reset_time=entry.reset_at)

        if entry.count < config.max_requests:
            entry.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=config.max_requests - entry.count,
                reset_time=entry.reset_at,
            )

        self._total_blocked += 1
        retry_after_ms = entry.reset_at - now
        logger.info("Rate limit exceeded for %s (retry after %.0fms)", key, retry_after_ms)
        return RateLimitResult(
            allowed=False,
            remaining=0,
            reset_time=entry.reset_at,
            retry_after_ms=retry_after_ms,
        )

    def config_for(self, endpoint: Endpoint, overrides: Optional[Dict[str, Any]] = None) -> RateLimitConfig:
        config = self.endpoint_configs.get(endpoint, self.endpoint_configs[Endpoint.API_GENERAL])
        if not overrides:
            return config
        allowed = {field.name for field in fields(RateLimitConfig)}
        unknown = sorted(set(overrides) - allowed)
        if unknown:
            raise ValidationFailureError(
                [f"Unknown rate limit override: {key}" for key in unknown], field="overrides"
            )
        try:
            return replace(config, **overrides)
        except ValueError as exc:
            raise ValidationFailureError([str(exc)], field="overrides") from exc

    def check_endpoint(
        self,
        principal: str,
        endpoint: Endpoint,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> RateLimitResult:
        """Check the preset budget of ``endpoint`` for ``principal``."""
        key = build_rate_limit_key(principal, endpoint)
        return self.check_limit(key, self.config_for(endpoint, overrides))

    def sweep(self) -> int:
        """Delete entries whose window has passed; returns how many were removed."""
        now = self._clock.now_ms()
        expired = [key for key, entry in self._entries.items() if entry.reset_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Swept %d expired rate-limit entries", len(expired))
        return len(expired)

    def get_entry(self, key: str) -> Optional[RateLimitEntry]:
        return self._entries.get(key)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def stats(self) -> Dict[str, int]:
        return {
            "tracked_keys": len(self._entries),
            "total_checks": self._total_checks,
            "total_blocked": self._total_blocked,
        }

    def start(self) -> None:
        """Begin the periodic sweep; requires a running event loop."""
        self._sweeper.start()

    async def stop(self) -> None:
        await self._sweeper.stop()

    def clear(self) -> None:
        self._entries.clear()

    async def destroy(self) -> None:
        await self.stop()
        self.clear()


def rate_limited(
    limiter: RateLimiter,
    principal: Union[str, Callable[[], str]],
    endpoint: Endpoint,
    overrides: Optional[Dict[str, Any]] = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorate a coroutine function so each call is gated by ``limiter``.

    ``principal`` may be a callable so the session id is resolved per call.
    A blocked call raises ``RateLimitExceededError`` without invoking the
    wrapped function.
    """

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            resolved = principal() if callable(principal) else principal
            result = limiter.check_endpoint(resolved, endpoint, overrides)
            if not result.allowed:
                raise RateLimitExceededError.from_result(result)
            return await fn(*args, **kwargs)

        return wrapper

    return decorator


__all__ = ["DEFAULT_SWEEP_INTERVAL_MS", "RateLimiter", "rate_limited"]
