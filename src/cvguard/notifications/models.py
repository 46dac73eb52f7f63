from __future__ import annotations

"""Data structures exchanged with the notification sink."""

import secrets
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

DEFAULT_DURATION_MS = 5000
PERSISTENT = 0


class NotificationSeverity(Enum):
    """Toast levels understood by the display layer."""

    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def _notification_id() -> str:
    return f"notification_{secrets.token_hex(5)}"


@dataclass
class Notification:
    """Human-readable event; ``duration_ms == 0`` means it stays until dismissed."""

    title: str
    message: str
    severity: NotificationSeverity
    timestamp: float
    duration_ms: int = DEFAULT_DURATION_MS
    category: str = "general"
    details: Optional[Dict[str, Any]] = None
    notification_id: str = field(default_factory=_notification_id)

    @property
    def is_persistent(self) -> bool:
        return self.duration_ms == PERSISTENT


class NotificationSink(Protocol):
    def notify(self, notification: Notification) -> None: ...


class MemoryNotificationSink:
    """Keeps delivered notifications in order; used by headless callers and tests."""

    def __init__(self) -> None:
        self.notifications: List[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def by_severity(self, severity: NotificationSeverity) -> List[Notification]:
        return [item for item in self.notifications if item.severity is severity]

    def titles(self) -> List[str]:
        return [item.title for item in self.notifications]

    def clear(self) -> None:
        self.notifications.clear()
