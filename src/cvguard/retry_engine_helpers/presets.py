"""Per-operation-class retry presets."""

from typing import Dict

from .retry_conditions import RETRY_CONDITIONS
from .types import OperationType, RetryConfig

RETRY_CONFIGS: Dict[OperationType, RetryConfig] = {
    OperationType.UPLOAD: RetryConfig(
        max_attempts=3,
        base_delay_ms=2000,
        max_delay_ms=10000,
        backoff_multiplier=2,
        retry_condition=RETRY_CONDITIONS[OperationType.UPLOAD],
    ),
    OperationType.ANALYSIS: RetryConfig(
        max_attempts=2,
        base_delay_ms=3000,
        max_delay_ms=15000,
        backoff_multiplier=2,
        retry_condition=RETRY_CONDITIONS[OperationType.ANALYSIS],
    ),
    OperationType.EDIT: RetryConfig(
        max_attempts=2,
        base_delay_ms=1500,
        max_delay_ms=8000,
        backoff_multiplier=2,
        retry_condition=RETRY_CONDITIONS[OperationType.EDIT],
    ),
    OperationType.DOWNLOAD: RetryConfig(
        max_attempts=3,
        base_delay_ms=2000,
        max_delay_ms=12000,
        backoff_multiplier=2,
        retry_condition=RETRY_CONDITIONS[OperationType.DOWNLOAD],
    ),
    OperationType.NETWORK: RetryConfig(
        max_attempts=4,
        base_delay_ms=1000,
        max_delay_ms=8000,
        backoff_multiplier=1.5,
        retry_condition=RETRY_CONDITIONS[OperationType.NETWORK],
    ),
}
