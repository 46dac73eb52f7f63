"""Runs guarded client actions: session check, rate limit, then retried execution."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, Optional, TypeVar

from .clock import Clock
from .config.security import SecuritySettings, load_security_settings
from .errors import (
    CvGuardError,
    RateLimitExceededError,
    SessionInvalidError,
    ValidationFailureError,
    is_retry_exhausted,
)
from .file_validation import DEFAULT_MAX_FILE_SIZE, FileSecurityResult, ensure_valid_upload
from .notifications import ErrorCategory, NotificationBridge
from .rate_limiter import RateLimiter
from .rate_limiter_helpers import Endpoint
from .retry_engine import RetryEngine
from .retry_engine_helpers import OperationType
from .session_registry import SecureSessionRegistry
from .session_registry_helpers.fingerprint import EnvironmentSignalProvider
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

ENDPOINT_OPERATIONS: Dict[Endpoint, OperationType] = {
    Endpoint.UPLOAD: OperationType.UPLOAD,
    Endpoint.ANALYSIS: OperationType.ANALYSIS,
    Endpoint.EDIT_SECTION: OperationType.EDIT,
    Endpoint.CHAT: OperationType.EDIT,
    Endpoint.PDF_GENERATION: OperationType.DOWNLOAD,
    Endpoint.API_GENERAL: OperationType.NETWORK,
}

OPERATION_CATEGORIES: Dict[OperationType, ErrorCategory] = {
    OperationType.UPLOAD: ErrorCategory.UPLOAD,
    OperationType.ANALYSIS: ErrorCategory.ANALYSIS,
    OperationType.EDIT: ErrorCategory.EDIT,
    OperationType.DOWNLOAD: ErrorCategory.DOWNLOAD,
    OperationType.NETWORK: ErrorCategory.NETWORK,
}


class GuardedActionRunner:
    """Owns the limiter and registry lifecycles and wires the guard sequence.

    ``run`` resolves the session, rejects invalid sessions, applies the
    endpoint's rate limit, records activity and finally executes the action
    under the operation's retry policy. Session and rate-limit rejections
    are raised before the action is invoked and are never retried.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        retry_engine: RetryEngine,
        registry: SecureSessionRegistry,
        notifier: Optional[NotificationBridge] = None,
        *,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ) -> None:
        self.rate_limiter = rate_limiter
        self.retry_engine = retry_engine
        self.registry = registry
        self.notifier = notifier
        self.max_file_size = max_file_size

    @classmethod
    def from_settings(
        cls,
        settings: Optional[SecuritySettings] = None,
        *,
        store: Optional[KeyValueStore] = None,
        clock: Optional[Clock] = None,
        notifier: Optional[NotificationBridge] = None,
        signal_provider: Optional[EnvironmentSignalProvider] = None,
    ) -> "GuardedActionRunner":
        """Build the limiter, retry engine and registry from environment settings."""
        resolved = settings or load_security_settings()
        notifier = notifier if notifier is not None else NotificationBridge(clock=clock)
        registry = SecureSessionRegistry(
            store,
            resolved.session.to_registry_config(),
            clock=clock,
            signal_provider=signal_provider,
            codec=resolved.session.build_codec(),
            notifier=notifier,
        )
        return cls(
            RateLimiter(clock=clock, endpoint_configs=resolved.rate_limit_overrides),
            RetryEngine(clock=clock, notifier=notifier),
            registry,
            notifier,
            max_file_size=resolved.max_file_size,
        )

    async def start(self) -> None:
        self.rate_limiter.start()
        await self.registry.init()

    async def stop(self) -> None:
        await self.rate_limiter.stop()
        await self.registry.destroy()

    async def __aenter__(self) -> "GuardedActionRunner":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def resolve_session_id(self, session_id: Optional[str] = None) -> str:
        if session_id:
            return session_id
        current = await self.registry.get_current_session()
        if current is None:
            current = await self.registry.create_session()
        return current.session_id

    async def run(
        self,
        endpoint: Endpoint,
        action: Callable[[], Awaitable[T]],
        *,
        session_id: Optional[str] = None,
        operation_type: Optional[OperationType] = None,
        operation_name: Optional[str] = None,
        feedback: bool = False,
    ) -> T:
        operation_type = operation_type or ENDPOINT_OPERATIONS[endpoint]
        operation_name = operation_name or operation_type.value
        resolved_id = await self.resolve_session_id(session_id)

        try:
            await self.registry.ensure_valid_session(resolved_id)
        except SessionInvalidError:
            logger.warning("Rejected %s for invalid session %s", endpoint.value, resolved_id)
            raise

        result = self.rate_limiter.check_endpoint(resolved_id, endpoint)
        if not result.allowed:
            if self.notifier is not None:
                self.notifier.rate_limited(result, action=operation_name)
            raise RateLimitExceededError.from_result(result)

        await self.registry.update_activity(resolved_id)

        if feedback:
            return await self.retry_engine.retry_with_feedback(action, operation_name, operation_type)

        try:
            return await self.retry_engine.execute(action, operation_type, operation_name=operation_name)
        except ValidationFailureError as exc:
            self._report(ErrorCategory.VALIDATION, exc, exc.field)
            raise
        except Exception as exc:
            if isinstance(exc, CvGuardError) and not is_retry_exhausted(exc):
                raise
            self._report(OPERATION_CATEGORIES[operation_type], exc, operation_name)
            raise

    def screen_upload(self, filename: str, content: bytes, content_type: str) -> FileSecurityResult:
        """Reject unsafe uploads before they count against the upload budget."""
        try:
            return ensure_valid_upload(filename, content, content_type, max_size=self.max_file_size)
        except ValidationFailureError as exc:
            self._report(ErrorCategory.VALIDATION, exc, exc.field)
            raise

    def _report(self, category: ErrorCategory, error: BaseException, subject: Optional[str]) -> None:
        if self.notifier is not None:
            self.notifier.report_error(category, error, subject=subject)


__all__ = ["ENDPOINT_OPERATIONS", "GuardedActionRunner", "OPERATION_CATEGORIES"]
