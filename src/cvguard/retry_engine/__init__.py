"""Classification-aware exponential backoff for async operations.

An operation is attempted up to ``max_attempts`` times. A failure the policy
does not consider transient propagates unchanged after its first occurrence.
A transient failure on the final attempt is rethrown unchanged, tagged by
``tag_retry_exhausted`` with the attempt count and history. The wait between attempts goes through the
injected clock, so cancelling the surrounding task interrupts it; an
operation already in flight is never cancelled by the engine itself.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar, Union

from ..clock import Clock, SystemClock
from ..errors import tag_retry_exhausted
from ..notifications import NotificationBridge
from ..retry_engine_helpers import (
    NON_RETRYABLE_ERRORS,
    RETRY_CONFIGS,
    OperationType,
    RetryAttempt,
    RetryConfig,
    is_transient_error,
)
from ..retry_engine_helpers.delay_calculator import DelayCalculator

logger = logging.getLogger(__name__)

T = TypeVar("T")
Operation = Callable[[], Awaitable[T]]
RetryPolicy = Union[OperationType, RetryConfig, None]


class RetryEngine:
    """Runs operations under a ``RetryConfig`` using the injected clock for waits."""

    def __init__(
        self,
        clock: Optional[Clock] = None,
        notifier: Optional[NotificationBridge] = None,
        custom_configs: Optional[Dict[OperationType, RetryConfig]] = None,
    ) -> None:
        self._clock = clock if clock is not None else SystemClock()
        self.notifier = notifier
        self.configs: Dict[OperationType, RetryConfig] = dict(RETRY_CONFIGS)
        if custom_configs:
            self.configs.update(custom_configs)

    def get_config(self, operation_type: OperationType) -> RetryConfig:
        return self.configs.get(operation_type, self.configs[OperationType.NETWORK])

    def resolve_policy(self, policy: RetryPolicy) -> RetryConfig:
        if policy is None:
            return RetryConfig()
        if isinstance(policy, OperationType):
            return self.get_config(policy)
        return policy

    async def retry_operation(
        self,
        operation: Operation[T],
        config: Optional[RetryConfig] = None,
        *,
        operation_name: str = "Operation",
    ) -> T:
        """Await ``operation()`` until it succeeds or the policy gives up."""
        config = config or RetryConfig()
        retry_condition = config.retry_condition or is_transient_error
        history: List[RetryAttempt] = []

        for attempt in range(1, config.max_attempts + 1):
            try:
                return await operation()
            except NON_RETRYABLE_ERRORS:
                raise
            except Exception as exc:
                if not retry_condition(exc):
                    logger.debug("[RetryEngine] %s failed with non-retryable %s", operation_name, type(exc).__name__)
                    raise

                if attempt == config.max_attempts:
                    history.append(RetryAttempt(attempt_number=attempt, last_error=exc))
                    logger.warning(
                        "[RetryEngine] %s exhausted %d attempts: %s", operation_name, attempt, exc
                    )
                    if config.on_max_attempts_reached is not None:
                        config.on_max_attempts_reached(exc)
                    tag_retry_exhausted(exc, attempt, history)
                    raise

                delay_ms = DelayCalculator.calculate_full_delay(config, attempt, operation_name)
                history.append(RetryAttempt(attempt_number=attempt, last_error=exc, computed_delay_ms=delay_ms))
                logger.info(
                    "[RetryEngine] %s attempt %d/%d failed (%s); retrying in %.0fms",
                    operation_name,
                    attempt,
                    config.max_attempts,
                    exc,
                    delay_ms,
                )
                if config.on_retry is not None:
                    config.on_retry(attempt, exc)
                await self._clock.sleep_ms(delay_ms)

        raise AssertionError("retry loop exited without returning or raising")

    async def execute(
        self,
        operation: Operation[T],
        policy: RetryPolicy = None,
        *,
        operation_name: Optional[str] = None,
    ) -> T:
        """Run ``operation`` under an operation-class preset or an explicit config."""
        if operation_name is None:
            operation_name = policy.value if isinstance(policy, OperationType) else "Operation"
        return await self.retry_operation(operation, self.resolve_policy(policy), operation_name=operation_name)

    async def retry_with_feedback(
        self,
        operation: Operation[T],
        operation_name: str,
        config: RetryPolicy = None,
    ) -> T:
        """Like ``execute`` but narrates progress through the notification bridge.

        Caller-supplied ``on_retry`` and ``on_max_attempts_reached`` hooks still
        run after the corresponding notification.
        """
        notifier = self.notifier or NotificationBridge(clock=self._clock)
        base = self.resolve_policy(config)

        def on_retry(attempt: int, error: BaseException) -> None:
            notifier.retrying(operation_name, attempt)
            if base.on_retry is not None:
                base.on_retry(attempt, error)

        def on_max_attempts_reached(error: BaseException) -> None:
            notifier.retry_exhausted(operation_name, base.max_attempts)
            if base.on_max_attempts_reached is not None:
                base.on_max_attempts_reached(error)

        narrated = replace(base, on_retry=on_retry, on_max_attempts_reached=on_max_attempts_reached)
        notifier.processing(operation_name)
        try:
            return await self.retry_operation(operation, narrated, operation_name=operation_name)
        except Exception as exc:
            notifier.operation_failed(operation_name, exc)
            raise

    def wrap(self, policy: RetryPolicy, fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        """Return a coroutine function that calls ``fn`` under ``policy``."""

        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await self.execute(
                lambda: fn(*args, **kwargs),
                policy,
                operation_name=getattr(fn, "__name__", "Operation"),
            )

        return wrapper


async def retry_operation(
    operation: Operation[T],
    config: Optional[RetryConfig] = None,
    *,
    operation_name: str = "Operation",
    clock: Optional[Clock] = None,
) -> T:
    """One-off retry without keeping an engine around."""
    return await RetryEngine(clock=clock).retry_operation(operation, config, operation_name=operation_name)


def is_retryable_error(error: BaseException, operation_type: OperationType) -> bool:
    """Whether the preset for ``operation_type`` would retry ``error``."""
    if isinstance(error, NON_RETRYABLE_ERRORS):
        return False
    condition = RETRY_CONFIGS[operation_type].retry_condition or is_transient_error
    return condition(error)


def create_retry_wrapper(
    operation_type: OperationType,
    fn: Callable[..., Awaitable[T]],
    engine: Optional[RetryEngine] = None,
) -> Callable[..., Awaitable[T]]:
    return (engine or RetryEngine()).wrap(operation_type, fn)


__all__ = [
    "RETRY_CONFIGS",
    "OperationType",
    "RetryAttempt",
    "RetryConfig",
    "RetryEngine",
    "create_retry_wrapper",
    "is_retryable_error",
    "retry_operation",
]
