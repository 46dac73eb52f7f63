"""Root pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from cvguard.clock import ManualClock
from cvguard.config import runtime
from cvguard.notifications import MemoryNotificationSink, NotificationBridge
from cvguard.session_registry_helpers import StaticSignalProvider
from cvguard.storage import InMemoryStore


class FakePubSub:
    """Minimal async pubsub double fed by ``FakeRedis.publish``."""

    def __init__(self, redis: "FakeRedis"):
        self._redis = redis
        self.channels: set[str] = set()
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.closed = False

    async def subscribe(self, *channels: str) -> None:
        for channel in channels:
            self.channels.add(channel)
            self._queue.put_nowait({"type": "subscribe", "channel": channel, "data": 1})
        self._redis._subscribers.append(self)

    async def unsubscribe(self, *channels: str) -> None:
        for channel in channels or tuple(self.channels):
            self.channels.discard(channel)

    async def listen(self):
        while True:
            yield await self._queue.get()

    async def aclose(self) -> None:
        self.closed = True
        if self in self._redis._subscribers:
            self._redis._subscribers.remove(self)

    def deliver(self, channel: str, message: str) -> None:
        if channel in self.channels:
            self._queue.put_nowait({"type": "message", "channel": channel, "data": message})


class FakeRedis:
    """In-memory Redis mock for testing."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self.published: list[tuple[str, str]] = []
        self._subscribers: list[FakePubSub] = []
        self.closed = False

    async def set(self, key: str, value: str | bytes) -> bool:
        """Set a string value."""
        self._data[key] = value if isinstance(value, str) else value.decode()
        return True

    async def get(self, key: str) -> str | None:
        """Get a string value."""
        return self._data.get(key)

    async def delete(self, *keys: str) -> int:
        """Delete keys."""
        deleted = 0
        for key in keys:
            if self._data.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def publish(self, channel: str, message: str) -> int:
        """Record a publish and fan it out to subscribers."""
        self.published.append((channel, message))
        for subscriber in list(self._subscribers):
            subscriber.deliver(channel, message)
        return len(self._subscribers)

    def pubsub(self) -> FakePubSub:
        return FakePubSub(self)

    async def aclose(self) -> None:
        self.closed = True

    def dump_string(self, key: str) -> str | None:
        return self._data.get(key)


@pytest.fixture(autouse=True)
def isolate_runtime_defaults():
    """Keep developer .env files out of configuration tests."""
    runtime._DEFAULT_VALUES = {}
    yield
    runtime._DEFAULT_VALUES = None


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def recording_sink() -> MemoryNotificationSink:
    return MemoryNotificationSink()


@pytest.fixture
def notifier(recording_sink, manual_clock) -> NotificationBridge:
    return NotificationBridge(recording_sink, clock=manual_clock)


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def signal_provider() -> StaticSignalProvider:
    return StaticSignalProvider()
