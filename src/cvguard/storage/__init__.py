"""Persisted key-value stores used for session data."""

from .base import ChangeListener, KeyValueStore
from .memory_store import InMemoryStore
from .redis_store import RedisStore

__all__ = ["ChangeListener", "InMemoryStore", "KeyValueStore", "RedisStore"]
