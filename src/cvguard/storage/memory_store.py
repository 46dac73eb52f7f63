"""Process-local store; several consumers sharing one instance behave like tabs."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .base import ChangeListener

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Dict-backed ``KeyValueStore``."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})
        self._listeners: List[ChangeListener] = []

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._notify(key)

    async def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._notify(key)

    def add_change_listener(self, listener: ChangeListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_change_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def start_change_listener(self) -> None:
        """Nothing to subscribe to; every write already notifies in-process."""

    async def stop_change_listener(self) -> None:
        pass

    def dump(self) -> Dict[str, str]:
        """Snapshot of stored values (test helper)."""
        return dict(self._data)

    def _notify(self, key: str) -> None:
        for listener in list(self._listeners):
            listener(key)
        logger.debug("Notified %d listeners of change to %s", len(self._listeners), key)
