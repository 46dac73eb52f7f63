"""Store protocol shared by the in-memory and Redis backends."""

from __future__ import annotations

from typing import Callable, Optional, Protocol

ChangeListener = Callable[[str], None]


class KeyValueStore(Protocol):
    """Per-origin string store with change notifications.

    Listeners receive the changed key. They are invoked synchronously and
    must not block; anything async should be scheduled by the listener.
    ``start_change_listener`` and ``stop_change_listener`` bracket delivery
    of writes made by other processes.
    """

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...

    def add_change_listener(self, listener: ChangeListener) -> None: ...

    def remove_change_listener(self, listener: ChangeListener) -> None: ...

    async def start_change_listener(self) -> None: ...

    async def stop_change_listener(self) -> None: ...
