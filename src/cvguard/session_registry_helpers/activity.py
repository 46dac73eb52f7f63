"""Input events that count as user activity, and the throttle on recording them."""

from enum import Enum
from typing import Optional

from ..clock import Clock


class InputEvent(Enum):
    POINTER_DOWN = "pointerdown"
    POINTER_MOVE = "pointermove"
    KEY_PRESS = "keypress"
    SCROLL = "scroll"
    TOUCH_START = "touchstart"


# Pointer movement fires continuously and is not treated as intent.
TRACKED_EVENTS = frozenset({InputEvent.POINTER_DOWN, InputEvent.KEY_PRESS, InputEvent.SCROLL, InputEvent.TOUCH_START})


class ActivityThrottle:
    """Admits at most one activity update per ``throttle_ms``."""

    def __init__(self, clock: Clock, throttle_ms: float) -> None:
        self._clock = clock
        self._throttle_ms = throttle_ms
        self._last_recorded_ms: Optional[float] = None

    def should_record(self, event: InputEvent) -> bool:
        if event not in TRACKED_EVENTS:
            return False
        now = self._clock.now_ms()
        if self._last_recorded_ms is not None and now - self._last_recorded_ms < self._throttle_ms:
            return False
        self._last_recorded_ms = now
        return True

    def reset(self) -> None:
        self._last_recorded_ms = None
