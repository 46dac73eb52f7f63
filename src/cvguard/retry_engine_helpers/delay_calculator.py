"""Delay calculation for the retry engine."""

import logging

from . import jitter
from .types import RetryConfig

logger = logging.getLogger(__name__)


class DelayCalculator:
    """Calculates inter-attempt delays with additive jitter."""

    @staticmethod
    def calculate_base_delay(config: RetryConfig, attempt: int) -> float:
        """
        Calculate the capped exponential delay.

        Args:
            config: Retry configuration
            attempt: Number of the attempt that just failed (1-based)

        Returns:
            Base delay in milliseconds
        """
        return min(config.base_delay_ms * (config.backoff_multiplier ** (attempt - 1)), config.max_delay_ms)

    @staticmethod
    def apply_jitter(base_delay_ms: float, jitter_ms: float) -> float:
        """Add ``uniform(0, jitter_ms)`` so concurrent callers spread out."""
        if jitter_ms <= 0:
            return base_delay_ms
        return base_delay_ms + jitter.uniform(0.0, jitter_ms)

    @classmethod
    def calculate_full_delay(cls, config: RetryConfig, attempt: int, operation_name: str) -> float:
        base_delay = cls.calculate_base_delay(config, attempt)
        final_delay = cls.apply_jitter(base_delay, config.jitter_ms)
        logger.debug(
            "[RetryEngine] %s: attempt=%d, base_delay=%.0fms, final_delay=%.0fms",
            operation_name,
            attempt,
            base_delay,
            final_delay,
        )
        return final_delay
