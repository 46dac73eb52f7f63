"""Data models for the secure session registry."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple

HOUR_MS = 60 * 60 * 1000.0


@dataclass
class SessionRecord:
    """One persisted session; timestamps are epoch milliseconds."""

    session_id: str
    created_at: float
    last_activity: float
    environment_fingerprint: str
    environment_signature: str
    is_active: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)

    def age_ms(self, now_ms: float) -> float:
        return now_ms - self.created_at

    def idle_ms(self, now_ms: float) -> float:
        return now_ms - self.last_activity

    def is_expired(self, now_ms: float, max_age_ms: float) -> bool:
        return self.age_ms(now_ms) > max_age_ms

    def is_inactive(self, now_ms: float, inactivity_timeout_ms: float) -> bool:
        return self.idle_ms(now_ms) > inactivity_timeout_ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "created_at": self.created_at,
            "last_activity": self.last_activity,
            "environment_fingerprint": self.environment_fingerprint,
            "environment_signature": self.environment_signature,
            "is_active": self.is_active,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionRecord":
        """Rebuild a record; raises ``KeyError``/``TypeError``/``ValueError`` on malformed input."""
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise TypeError(f"metadata must be a mapping, got {type(metadata).__name__}")
        return cls(
            session_id=str(data["session_id"]),
            created_at=float(data["created_at"]),
            last_activity=float(data["last_activity"]),
            environment_fingerprint=str(data["environment_fingerprint"]),
            environment_signature=str(data["environment_signature"]),
            is_active=bool(data.get("is_active", True)),
            metadata=dict(metadata),
        )


@dataclass(frozen=True)
class SessionSecurityInfo:
    """Result of one security validation pass."""

    is_valid: bool
    is_expired: bool
    is_inactive: bool
    security_score: int
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SessionRegistryConfig:
    max_age_ms: float = 24 * HOUR_MS
    inactivity_timeout_ms: float = 2 * HOUR_MS
    max_sessions: int = 5
    cleanup_interval_ms: float = HOUR_MS
    activity_interval_ms: float = 30_000.0
    activity_throttle_ms: float = 1_000.0
    storage_key: str = "secure_cv_sessions"

    def __post_init__(self) -> None:
        problems = []
        for name in ("max_age_ms", "inactivity_timeout_ms", "cleanup_interval_ms", "activity_interval_ms"):
            if getattr(self, name) <= 0:
                problems.append(f"{name} must be positive")
        if self.activity_throttle_ms < 0:
            problems.append("activity_throttle_ms must not be negative")
        if self.max_sessions < 1:
            problems.append("max_sessions must be at least 1")
        if not self.storage_key:
            problems.append("storage_key must not be empty")
        if problems:
            raise ValueError("Invalid session registry config: " + "; ".join(problems))


__all__ = ["SessionRecord", "SessionRegistryConfig", "SessionSecurityInfo"]
