"""Notification models, sinks and the bridge that phrases resilience events."""

from .bridge import NotificationBridge
from .error_messages import USER_FRIENDLY_MESSAGES, ErrorCategory, refine_error_message
from .models import (
    DEFAULT_DURATION_MS,
    PERSISTENT,
    MemoryNotificationSink,
    Notification,
    NotificationSeverity,
    NotificationSink,
)
from .sinks import LoggingNotificationSink
from .throttle import NotificationThrottle

__all__ = [
    "DEFAULT_DURATION_MS",
    "ErrorCategory",
    "LoggingNotificationSink",
    "MemoryNotificationSink",
    "Notification",
    "NotificationBridge",
    "NotificationSeverity",
    "NotificationSink",
    "NotificationThrottle",
    "PERSISTENT",
    "USER_FRIENDLY_MESSAGES",
    "refine_error_message",
]
