"""
Secure, self-expiring session registry.

Sessions live as one list under ``config.storage_key`` in a shared
``KeyValueStore``. Each record carries the environment fingerprint it was
created with, so later validation can notice when the same session ID shows
up in a different environment. Several registries on one store behave like
browser tabs: a write by one prompts the others to sweep.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional, Set

from .async_helpers import cancel_tasks, safely_schedule_coroutine
from .clock import Clock, SystemClock
from .errors import StoreError
from .notifications import NotificationBridge
from .sanitization import sanitize_metadata
from .scheduling import PeriodicTask
from .session_registry_helpers.activity import ActivityThrottle
from .session_registry_helpers.fingerprint import (
    EnvironmentSignalProvider,
    ProcessSignalProvider,
    compute_fingerprint,
)
from .session_registry_helpers.id_generator import SessionIdGenerator
from .session_registry_helpers.models import SessionRecord, SessionRegistryConfig
from .session_registry_helpers.payload_codec import PayloadCodec
from .session_registry_helpers.repository import SessionRepository
from .session_registry_mixins import SessionRegistryActivityMixin, SessionRegistrySecurityMixin
from .storage import InMemoryStore, KeyValueStore

logger = logging.getLogger(__name__)

__all__ = ["SecureSessionRegistry"]


class SecureSessionRegistry(SessionRegistryActivityMixin, SessionRegistrySecurityMixin):
    """Creates, validates, ages out and caps sessions.

    Nothing runs in the background until ``init()``; ``destroy()`` cancels
    every timer and task the registry started.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        config: Optional[SessionRegistryConfig] = None,
        *,
        clock: Optional[Clock] = None,
        signal_provider: Optional[EnvironmentSignalProvider] = None,
        codec: Optional[PayloadCodec] = None,
        notifier: Optional[NotificationBridge] = None,
    ) -> None:
        self.config = config or SessionRegistryConfig()
        self.store: KeyValueStore = store if store is not None else InMemoryStore()
        self.notifier = notifier
        self._clock = clock if clock is not None else SystemClock()
        self._signal_provider = signal_provider if signal_provider is not None else ProcessSignalProvider()
        self._repository = SessionRepository(self.store, self.config.storage_key, codec)
        self._id_generator = SessionIdGenerator()
        self._activity_throttle = ActivityThrottle(self._clock, self.config.activity_throttle_ms)
        self._cleanup_task = PeriodicTask("session-cleanup", self.config.cleanup_interval_ms, self.cleanup_expired_sessions)
        self._heartbeat_task = PeriodicTask("session-heartbeat", self.config.activity_interval_ms, self.touch_current_session)
        self._pending: Set[asyncio.Task[Any]] = set()
        self._listening = False
        self.initialized = False

    async def init(self) -> None:
        """Start timers, subscribe to store changes and run one cleanup."""
        if self.initialized:
            return
        self._cleanup_task.start()
        self._heartbeat_task.start()
        self.store.add_change_listener(self.handle_store_change)
        await self.store.start_change_listener()
        self._listening = True
        self.initialized = True
        await self.cleanup_expired_sessions()
        logger.debug("Session registry initialised for %s", self.config.storage_key)

    async def destroy(self) -> None:
        if self._listening:
            self.store.remove_change_listener(self.handle_store_change)
            await self.store.stop_change_listener()
            self._listening = False
        await self._cleanup_task.stop()
        await self._heartbeat_task.stop()
        await cancel_tasks(self._pending)
        self.initialized = False

    async def __aenter__(self) -> "SecureSessionRegistry":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.destroy()

    @property
    def codec(self) -> PayloadCodec:
        return self._repository.codec

    async def create_session(self, metadata: Optional[Mapping[str, Any]] = None) -> SessionRecord:
        """Create and store a session, then apply the session cap."""
        now = self._clock.now_ms()
        signals = self._signal_provider.collect()
        record = SessionRecord(
            session_id=self._id_generator.generate(now),
            created_at=now,
            last_activity=now,
            environment_fingerprint=compute_fingerprint(signals),
            environment_signature=signals.environment_signature,
            is_active=True,
            metadata=sanitize_metadata(metadata),
        )
        await self._repository.upsert(record)
        evicted = await self.enforce_session_limits()
        if record.session_id in evicted:
            record.is_active = False
        logger.info("Created session %s", record.session_id)
        return record

    def handle_store_change(self, key: str) -> None:
        """Store listener: a foreign write to our key triggers a cleanup."""
        if key != self.config.storage_key or self._repository.is_writing:
            return
        safely_schedule_coroutine(self._cleanup_after_change, name="session-change-cleanup", pending=self._pending)

    async def _cleanup_after_change(self) -> None:
        try:
            await self.cleanup_expired_sessions()
        except StoreError as exc:
            logger.warning("Cleanup after store change failed: %s", exc)
