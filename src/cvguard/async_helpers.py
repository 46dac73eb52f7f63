from __future__ import annotations

"""Helpers for scheduling coroutines from synchronous callbacks."""

import asyncio
import contextlib
from typing import Any, Callable, Coroutine, Iterable, Optional, Set, Union

CoroutineFactory = Callable[[], Coroutine[Any, Any, Any]]


def safely_schedule_coroutine(
    coro_or_factory: Union[Coroutine[Any, Any, Any], CoroutineFactory],
    *,
    name: Optional[str] = None,
    pending: Optional[Set[asyncio.Task[Any]]] = None,
) -> Optional[asyncio.Task[Any]]:
    """
    Schedule a coroutine from code that cannot await, such as a store listener.

    With a running loop the coroutine becomes a task; when ``pending`` is
    given the task is held there until it finishes. Without a running loop
    the coroutine is run to completion immediately and ``None`` is returned.
    """
    coro = _resolve_coroutine(coro_or_factory)

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(coro)
        return None

    task = loop.create_task(coro, name=name)
    if pending is not None:
        pending.add(task)
        task.add_done_callback(pending.discard)
    return task


async def cancel_tasks(tasks: Iterable[asyncio.Task[Any]]) -> None:
    """Cancel ``tasks`` and wait until each has finished."""
    for task in list(tasks):
        if not task.done():
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def _resolve_coroutine(
    coro_or_factory: Union[Coroutine[Any, Any, Any], CoroutineFactory],
) -> Coroutine[Any, Any, Any]:
    if asyncio.iscoroutine(coro_or_factory):
        return coro_or_factory

    if callable(coro_or_factory):
        result = coro_or_factory()
        if not asyncio.iscoroutine(result):
            raise TypeError("Callable passed to safely_schedule_coroutine must return a coroutine")
        return result

    raise TypeError("safely_schedule_coroutine expects a coroutine or a callable returning one")
