"""Client-side resilience and trust layer: rate limiting, retries and secure sessions."""

from .clock import Clock, ManualClock, SystemClock
from .errors import (
    CvGuardError,
    RateLimitExceededError,
    SessionInvalidError,
    StoreError,
    ValidationFailureError,
    is_retry_exhausted,
)
from .guard import GuardedActionRunner
from .notifications import ErrorCategory, NotificationBridge, NotificationSeverity
from .rate_limiter import RateLimiter, rate_limited
from .rate_limiter_helpers import Endpoint, RateLimitConfig, RateLimitResult
from .retry_engine import RetryEngine, create_retry_wrapper, is_retryable_error, retry_operation
from .retry_engine_helpers import RETRY_CONFIGS, OperationType, RetryConfig
from .session_registry import SecureSessionRegistry
from .session_registry_helpers import (
    EnvironmentSignals,
    InputEvent,
    ProcessSignalProvider,
    SessionRecord,
    SessionRegistryConfig,
    SessionSecurityInfo,
    StaticSignalProvider,
)
from .storage import InMemoryStore, KeyValueStore, RedisStore

__version__ = "0.1.0"

__all__ = [
    "Clock",
    "CvGuardError",
    "Endpoint",
    "EnvironmentSignals",
    "ErrorCategory",
    "GuardedActionRunner",
    "InMemoryStore",
    "InputEvent",
    "KeyValueStore",
    "ManualClock",
    "NotificationBridge",
    "NotificationSeverity",
    "OperationType",
    "ProcessSignalProvider",
    "RETRY_CONFIGS",
    "RateLimitConfig",
    "RateLimitExceededError",
    "RateLimitResult",
    "RateLimiter",
    "RedisStore",
    "RetryConfig",
    "RetryEngine",
    "SecureSessionRegistry",
    "SessionInvalidError",
    "SessionRecord",
    "SessionRegistryConfig",
    "SessionSecurityInfo",
    "StaticSignalProvider",
    "StoreError",
    "SystemClock",
    "ValidationFailureError",
    "create_retry_wrapper",
    "is_retry_exhausted",
    "is_retryable_error",
    "rate_limited",
    "retry_operation",
]
