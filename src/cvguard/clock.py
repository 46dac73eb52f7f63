"""Time sources for window, backoff and session age calculations.

All timestamps are epoch milliseconds as floats. ``SystemClock`` reads the
wall clock and suspends on the running event loop; ``ManualClock`` keeps a
virtual time that only moves when advanced or slept on, so window and expiry
logic can be driven deterministically.
"""

from __future__ import annotations

import asyncio
import time
from typing import List, Protocol


class Clock(Protocol):
    def now_ms(self) -> float: ...

    async def sleep_ms(self, delay_ms: float) -> None: ...


class SystemClock:
    """Wall-clock time backed by ``time.time`` and ``asyncio.sleep``."""

    def now_ms(self) -> float:
        return time.time() * 1000.0

    async def sleep_ms(self, delay_ms: float) -> None:
        await asyncio.sleep(max(delay_ms, 0.0) / 1000.0)


class ManualClock:
    """Virtual clock; ``sleep_ms`` advances time instead of waiting."""

    def __init__(self, start_ms: float = 1_700_000_000_000.0) -> None:
        self._now_ms = float(start_ms)
        self.sleeps: List[float] = []

    def now_ms(self) -> float:
        return self._now_ms

    def advance(self, delta_ms: float) -> float:
        if delta_ms < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now_ms += delta_ms
        return self._now_ms

    def set(self, now_ms: float) -> None:
        self._now_ms = float(now_ms)

    async def sleep_ms(self, delay_ms: float) -> None:
        self.sleeps.append(delay_ms)
        self.advance(max(delay_ms, 0.0))
        # Yield so cancellation and other tasks still see a suspension point.
        await asyncio.sleep(0)


__all__ = ["Clock", "ManualClock", "SystemClock"]
