"""Background periodic task with explicit start/stop lifecycle."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from .errors import CvGuardError

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Union[None, Awaitable[Any]]]

# Failures inside a tick are logged and the loop keeps its cadence.
TICK_ERRORS = (CvGuardError, ConnectionError, TimeoutError, OSError, RuntimeError, ValueError, KeyError, TypeError)


class PeriodicTask:
    """Runs ``callback`` every ``interval_ms`` on the running event loop.

    ``stop()`` cancels the underlying task and waits for it, so no timer
    outlives its owner.
    """

    def __init__(self, name: str, interval_ms: float, callback: TickCallback, *, run_immediately: bool = False) -> None:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive for {name} (got {interval_ms})")
        self.name = name
        self.interval_ms = interval_ms
        self._callback = callback
        self._run_immediately = run_immediately
        self._task: Optional[asyncio.Task[None]] = None
        self.tick_count = 0

    def start(self) -> None:
        if self.is_running():
            logger.debug("%s already running", self.name)
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=self.name)
        logger.debug("%s started (interval: %.0fms)", self.name, self.interval_ms)

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        if not task.done():
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("%s stopped after %d ticks", self.name, self.tick_count)

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> None:
        """Invoke the callback a single time, outside the schedule."""
        result = self._callback()
        if inspect.isawaitable(result):
            await result
        self.tick_count += 1

    async def _loop(self) -> None:
        if not self._run_immediately:
            await asyncio.sleep(self.interval_ms / 1000.0)
        while True:
            try:
                await self.run_once()
            except TICK_ERRORS:
                logger.exception("%s tick failed", self.name)
            await asyncio.sleep(self.interval_ms / 1000.0)


__all__ = ["PeriodicTask", "TICK_ERRORS"]
