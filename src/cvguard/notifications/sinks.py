"""Notification sinks that do not need a display layer."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from .models import Notification, NotificationSeverity

logger = logging.getLogger("cvguard.notifications")

_LOG_LEVELS: Dict[NotificationSeverity, int] = {
    NotificationSeverity.SUCCESS: logging.INFO,
    NotificationSeverity.INFO: logging.INFO,
    NotificationSeverity.WARNING: logging.WARNING,
    NotificationSeverity.ERROR: logging.ERROR,
}


class LoggingNotificationSink:
    """Writes each notification as one log record at a severity-matched level."""

    def __init__(self, target: Optional[logging.Logger] = None) -> None:
        self._logger = target or logger

    def notify(self, notification: Notification) -> None:
        self._logger.log(
            _LOG_LEVELS[notification.severity],
            "[%s] %s: %s",
            notification.category,
            notification.title,
            notification.message,
        )
