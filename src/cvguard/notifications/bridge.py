"""Turns resilience events into human-readable notifications.

The bridge owns wording, severities and display durations. Rendering is the
sink's concern; the bridge only builds ``Notification`` objects and hands
them over, optionally through a duplicate-suppressing throttle.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

from ..clock import Clock, SystemClock
from .error_messages import (
    USER_FRIENDLY_MESSAGES,
    WARNING_CATEGORIES,
    WARNING_DURATION_MS,
    ErrorCategory,
    refine_error_message,
)
from .models import DEFAULT_DURATION_MS, PERSISTENT, Notification, NotificationSeverity, NotificationSink
from .sinks import LoggingNotificationSink
from .throttle import NotificationThrottle

if TYPE_CHECKING:
    from ..rate_limiter_helpers.types import RateLimitResult
    from ..session_registry_helpers.models import SessionSecurityInfo

logger = logging.getLogger(__name__)

PROCESSING_DURATION_MS = 2000
RETRY_NOTICE_DURATION_MS = 3000


class NotificationBridge:
    """Builds notifications for limiter, retry and session events."""

    def __init__(
        self,
        sink: Optional[NotificationSink] = None,
        *,
        clock: Optional[Clock] = None,
        throttle: Optional[NotificationThrottle] = None,
    ) -> None:
        self.sink: NotificationSink = sink if sink is not None else LoggingNotificationSink()
        self._clock = clock if clock is not None else SystemClock()
        self._throttle = throttle
        self.suppressed_count = 0

    def notify(
        self,
        title: str,
        message: str,
        severity: NotificationSeverity,
        *,
        duration_ms: Optional[int] = None,
        category: str = "general",
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[Notification]:
        """Deliver one notification; returns ``None`` when the throttle drops it."""
        if duration_ms is None:
            duration_ms = PERSISTENT if severity is NotificationSeverity.ERROR else DEFAULT_DURATION_MS
        notification = Notification(
            title=title,
            message=message,
            severity=severity,
            timestamp=self._clock.now_ms(),
            duration_ms=duration_ms,
            category=category,
            details=details,
        )
        if self._throttle is not None and not self._throttle.record(notification):
            self.suppressed_count += 1
            logger.debug("Suppressed repeated notification %r", title)
            return None
        self.sink.notify(notification)
        return notification

    def success(self, title: str, message: str = "", duration_ms: Optional[int] = None) -> Optional[Notification]:
        return self.notify(title, message, NotificationSeverity.SUCCESS, duration_ms=duration_ms)

    def info(self, title: str, message: str = "", duration_ms: Optional[int] = None) -> Optional[Notification]:
        return self.notify(title, message, NotificationSeverity.INFO, duration_ms=duration_ms)

    def warning(self, title: str, message: str = "", duration_ms: Optional[int] = None) -> Optional[Notification]:
        return self.notify(title, message, NotificationSeverity.WARNING, duration_ms=duration_ms)

    def error(self, title: str, message: str = "", duration_ms: Optional[int] = None) -> Optional[Notification]:
        return self.notify(title, message, NotificationSeverity.ERROR, duration_ms=duration_ms)

    def rate_limited(self, result: "RateLimitResult", action: Optional[str] = None) -> Optional[Notification]:
        from ..rate_limiter_helpers.formatting import format_rate_limit_message

        return self.notify(
            "Rate Limit Exceeded",
            format_rate_limit_message(result),
            NotificationSeverity.WARNING,
            category="rate_limit",
            details={"action": action, "retry_after_ms": result.retry_after_ms, "reset_time": result.reset_time},
        )

    def processing(self, operation_name: str) -> Optional[Notification]:
        return self.notify(
            "Processing",
            f"Starting {operation_name}...",
            NotificationSeverity.INFO,
            duration_ms=PROCESSING_DURATION_MS,
            category="retry",
        )

    def retrying(self, operation_name: str, attempt: int) -> Optional[Notification]:
        return self.notify(
            "Retrying Operation",
            f"{operation_name} failed (attempt {attempt}). Retrying...",
            NotificationSeverity.WARNING,
            duration_ms=RETRY_NOTICE_DURATION_MS,
            category="retry",
        )

    def retry_exhausted(self, operation_name: str, attempts: int) -> Optional[Notification]:
        return self.notify(
            "Operation Failed",
            f"{operation_name} failed after {attempts} attempts. Please try again later.",
            NotificationSeverity.ERROR,
            category="retry",
        )

    def operation_failed(self, operation_name: str, error: Union[BaseException, str]) -> Optional[Notification]:
        return self.notify(
            "Operation Failed",
            f"{operation_name} failed: {error}",
            NotificationSeverity.ERROR,
            category="retry",
        )

    def session_invalid(self, info: Optional["SessionSecurityInfo"] = None) -> Optional[Notification]:
        from ..errors import INVALID_SESSION_MESSAGE

        details = None
        if info is not None:
            details = {"security_score": info.security_score, "warnings": list(info.warnings)}
        return self.notify(
            "Session Error",
            INVALID_SESSION_MESSAGE,
            NotificationSeverity.ERROR,
            category="session",
            details=details,
        )

    def report_error(
        self,
        category: ErrorCategory,
        error: Union[BaseException, str],
        *,
        subject: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> Optional[Notification]:
        """Log a categorised failure and show the fixed user-facing wording for it.

        The specific guidance from ``refine_error_message`` is logged and kept
        in the notification details; the displayed text comes from
        ``USER_FRIENDLY_MESSAGES``.
        """
        reason = refine_error_message(category, str(error), subject=subject)
        logger.error("[%s] %s (context=%s)", category.value.upper(), reason, context or {})
        details: Dict[str, Any] = {"reason": reason}
        if context:
            details["context"] = dict(context)

        message = USER_FRIENDLY_MESSAGES.get(category, reason)
        if category in WARNING_CATEGORIES:
            return self.notify(
                "Warning",
                message,
                NotificationSeverity.WARNING,
                duration_ms=WARNING_DURATION_MS,
                category=category.value,
                details=details,
            )
        return self.notify(
            "Error",
            message,
            NotificationSeverity.ERROR,
            duration_ms=PERSISTENT,
            category=category.value,
            details=details,
        )


__all__ = ["NotificationBridge", "PROCESSING_DURATION_MS", "RETRY_NOTICE_DURATION_MS"]
