from __future__ import annotations

"""
Redis-backed key-value store.

Values live under ``<namespace>:<key>``. Every write is announced on
``<namespace>:changes`` so other processes sharing the namespace can react,
mirroring storage events between browser tabs.
"""


import asyncio
import contextlib
import logging
import secrets
from typing import List, Optional, Union

import redis.asyncio
from redis.exceptions import RedisError

from ..config.redis import RedisSettings, load_redis_settings
from ..errors import StoreError
from .base import ChangeListener

logger = logging.getLogger(__name__)

REDIS_ERRORS = (RedisError, asyncio.TimeoutError, OSError)

_MESSAGE_SEPARATOR = "|"


def _decode(value: Union[str, bytes, None]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RedisStore:
    """``KeyValueStore`` on top of ``redis.asyncio.Redis``."""

    def __init__(self, client: redis.asyncio.Redis, namespace: str = "cvguard") -> None:
        self._client = client
        self._namespace = namespace
        self._origin = secrets.token_hex(8)
        self._listeners: List[ChangeListener] = []
        self._pubsub: Optional[redis.asyncio.client.PubSub] = None
        self._listener_task: Optional[asyncio.Task[None]] = None
        self._feed_users = 0

    @classmethod
    def from_settings(cls, settings: Optional[RedisSettings] = None) -> "RedisStore":
        resolved = settings or load_redis_settings()
        client = redis.asyncio.Redis(
            host=resolved.host,
            port=resolved.port,
            db=resolved.db,
            password=resolved.password,
            ssl=resolved.ssl,
            socket_timeout=resolved.socket_timeout,
        )
        return cls(client, namespace=resolved.namespace)

    @property
    def changes_channel(self) -> str:
        return f"{self._namespace}:changes"

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self._client.get(self._key(key))
        except REDIS_ERRORS as exc:
            raise StoreError("get", key, exc) from exc
        return _decode(value)

    async def set(self, key: str, value: str) -> None:
        try:
            await self._client.set(self._key(key), value)
        except REDIS_ERRORS as exc:
            raise StoreError("set", key, exc) from exc
        await self._announce(key)

    async def remove(self, key: str) -> None:
        try:
            await self._client.delete(self._key(key))
        except REDIS_ERRORS as exc:
            raise StoreError("remove", key, exc) from exc
        await self._announce(key)

    def add_change_listener(self, listener: ChangeListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_change_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def start_change_listener(self) -> None:
        """Subscribe to the changes channel and relay foreign writes to listeners.

        Calls are counted; the subscription stays up until every caller has
        called ``stop_change_listener``.
        """
        self._feed_users += 1
        if self._listener_task is not None and not self._listener_task.done():
            return
        await self._teardown_feed()
        pubsub = self._client.pubsub()
        try:
            await pubsub.subscribe(self.changes_channel)
        except REDIS_ERRORS as exc:
            self._feed_users -= 1
            raise StoreError("subscribe", self.changes_channel, exc) from exc
        self._pubsub = pubsub
        self._listener_task = asyncio.create_task(self._listen(pubsub), name="cvguard-store-changes")

    async def stop_change_listener(self) -> None:
        """Release one ``start_change_listener`` call; the client stays open."""
        if self._feed_users > 0:
            self._feed_users -= 1
        if self._feed_users == 0:
            await self._teardown_feed()

    async def close(self) -> None:
        self._feed_users = 0
        await self._teardown_feed()
        await self._client.aclose()

    async def _teardown_feed(self) -> None:
        if self._listener_task is not None:
            self._listener_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._listener_task
            self._listener_task = None
        if self._pubsub is not None:
            try:
                await self._pubsub.unsubscribe(self.changes_channel)
                await self._pubsub.aclose()
            except REDIS_ERRORS as exc:  # policy_guard: allow-silent-handler
                logger.debug("Ignoring pubsub teardown failure: %s", exc)
            self._pubsub = None

    async def _announce(self, key: str) -> None:
        try:
            await self._client.publish(self.changes_channel, f"{self._origin}{_MESSAGE_SEPARATOR}{key}")
        except REDIS_ERRORS as exc:
            # The write itself succeeded; peers will catch up on their next sweep.
            logger.warning("Failed to announce change to %s: %s", key, exc)

    async def _listen(self, pubsub: redis.asyncio.client.PubSub) -> None:
        try:
            async for message in pubsub.listen():
                self.handle_message(message)
        except REDIS_ERRORS as exc:
            logger.error("Store change listener stopped: %s", exc)

    def handle_message(self, message: dict) -> None:
        """Dispatch one pubsub message; own writes are skipped."""
        if message.get("type") != "message":
            return
        payload = _decode(message.get("data"))
        if not payload or _MESSAGE_SEPARATOR not in payload:
            return
        origin, key = payload.split(_MESSAGE_SEPARATOR, 1)
        if origin == self._origin:
            return
        for listener in list(self._listeners):
            listener(key)


__all__ = ["REDIS_ERRORS", "RedisStore"]
