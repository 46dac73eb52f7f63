"""Mixin classes for SecureSessionRegistry functionality."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from .errors import SessionInvalidError
from .sanitization import validate_session_id
from .session_registry_helpers.cleanup import partition_stale_sessions
from .session_registry_helpers.fingerprint import compute_fingerprint
from .session_registry_helpers.limits import select_sessions_to_deactivate
from .session_registry_helpers.security_validator import evaluate_session_security, session_not_found

if TYPE_CHECKING:
    from .clock import Clock
    from .notifications import NotificationBridge
    from .session_registry_helpers.activity import ActivityThrottle, InputEvent
    from .session_registry_helpers.fingerprint import EnvironmentSignalProvider
    from .session_registry_helpers.models import SessionRecord, SessionRegistryConfig, SessionSecurityInfo
    from .session_registry_helpers.repository import SessionRepository

logger = logging.getLogger(__name__)

MALFORMED_SESSION_ID = "Malformed session identifier"


class SessionRegistryQueryMixin:
    """Mixin for read-only session lookups."""

    _repository: SessionRepository

    async def get_all_sessions(self) -> List[SessionRecord]:
        return await self._repository.load()

    async def get_session(self, session_id: str) -> Optional[SessionRecord]:
        return await self._repository.find(session_id)

    async def get_active_sessions(self) -> List[SessionRecord]:
        return [record for record in await self._repository.load() if record.is_active]

    async def get_current_session(self) -> Optional[SessionRecord]:
        """Active session with the most recent ``last_activity``, if any."""
        active = await self.get_active_sessions()
        if not active:
            return None
        return max(active, key=lambda record: record.last_activity)


class SessionRegistryActivityMixin(SessionRegistryQueryMixin):
    """Mixin for activity tracking."""

    _repository: SessionRepository
    _clock: Clock
    _activity_throttle: ActivityThrottle

    async def update_activity(self, session_id: str) -> bool:
        """Bump ``last_activity``; returns False for unknown or deactivated IDs.

        Deactivation is terminal, so evicted and invalidated records keep
        their flag and their last recorded activity.
        """
        records = await self._repository.load()
        for record in records:
            if record.session_id == session_id:
                if not record.is_active:
                    return False
                record.last_activity = self._clock.now_ms()
                await self._repository.save(records)
                return True
        return False

    async def touch_current_session(self) -> Optional[str]:
        """Heartbeat: refresh the current session and return its ID."""
        current = await self.get_current_session()
        if current is None:
            return None
        await self.update_activity(current.session_id)
        return current.session_id

    async def record_input_event(self, event: InputEvent) -> bool:
        """Count a coarse input event as activity on the current session.

        Returns True when the event led to an update; micro-events and
        events inside the throttle window are ignored.
        """
        if not self._activity_throttle.should_record(event):
            return False
        return await self.touch_current_session() is not None


class SessionRegistrySecurityMixin:
    """Mixin for validation, invalidation, limits and cleanup."""

    _repository: SessionRepository
    _clock: Clock
    _signal_provider: EnvironmentSignalProvider
    config: SessionRegistryConfig
    notifier: Optional[NotificationBridge]

    async def validate_session_security(self, session_id: str) -> SessionSecurityInfo:
        if not validate_session_id(session_id).is_valid:
            return session_not_found(MALFORMED_SESSION_ID)
        record = await self._repository.find(session_id)
        signals = self._signal_provider.collect()
        info = evaluate_session_security(
            record,
            self._clock.now_ms(),
            self.config,
            compute_fingerprint(signals),
            signals.environment_signature,
        )
        if not info.is_valid:
            logger.info("Session %s failed validation (score %d): %s", session_id, info.security_score, info.warnings)
        return info

    async def ensure_valid_session(self, session_id: Optional[str]) -> SessionRecord:
        """Return the session record or raise ``SessionInvalidError``."""
        info = session_not_found()
        if session_id is not None:
            info = await self.validate_session_security(session_id)
            record = await self._repository.find(session_id) if info.is_valid else None
            if record is not None:
                return record
        if self.notifier is not None:
            self.notifier.session_invalid(info)
        raise SessionInvalidError(session_id, info)

    async def invalidate_session(self, session_id: str) -> bool:
        """Mark the session inactive; the record stays until swept."""
        records = await self._repository.load()
        for record in records:
            if record.session_id == session_id:
                record.is_active = False
                await self._repository.save(records)
                logger.info("Invalidated session %s", session_id)
                return True
        return False

    async def enforce_session_limits(self) -> List[str]:
        """Deactivate the least recently active sessions beyond ``max_sessions``."""
        records = await self._repository.load()
        evicted = select_sessions_to_deactivate(records, self.config.max_sessions)
        if not evicted:
            return []
        for record in evicted:
            record.is_active = False
        await self._repository.save(records)
        evicted_ids = [record.session_id for record in evicted]
        logger.info("Deactivated %d sessions over the limit of %d", len(evicted_ids), self.config.max_sessions)
        return evicted_ids

    async def cleanup_expired_sessions(self) -> int:
        """Delete sessions that are both expired and inactive; returns how many."""
        records = await self._repository.load()
        kept, removed = partition_stale_sessions(records, self._clock.now_ms(), self.config)
        if removed:
            await self._repository.save(kept)
            logger.info("Removed %d expired sessions", len(removed))
        return len(removed)
