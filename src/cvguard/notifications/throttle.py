from __future__ import annotations

"""Duplicate suppression for notifications."""


from collections import deque
from typing import Deque, Dict, Tuple

from .models import Notification


class NotificationThrottle:
    """Sliding-window cap on identical notifications (same title and message)."""

    def __init__(self, window_ms: float, max_repeats: int) -> None:
        self._window_ms = window_ms
        self._max_repeats = max_repeats
        self._recent: Dict[Tuple[str, str], Deque[float]] = {}

    def record(self, notification: Notification) -> bool:
        """Record a notification and return True when it should be delivered."""

        now = notification.timestamp
        queue = self._recent.setdefault((notification.title, notification.message), deque())
        self._prune(queue, now)
        if len(queue) >= self._max_repeats:
            return False
        queue.append(now)
        return True

    def _prune(self, queue: Deque[float], now: float) -> None:
        window_start = now - self._window_ms
        while queue and queue[0] <= window_start:
            queue.popleft()
