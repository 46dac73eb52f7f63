from __future__ import annotations

"""Security settings: session limits, payload codec, upload size and rate-limit overrides."""


from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List

from ..file_validation import DEFAULT_MAX_FILE_SIZE
from ..rate_limiter_helpers.types import DEFAULT_RATE_LIMIT_CONFIGS, Endpoint, RateLimitConfig
from ..session_registry_helpers.models import SessionRegistryConfig
from ..session_registry_helpers.payload_codec import CODEC_NAMES, PayloadCodec, build_codec
from . import ConfigurationError, env_int, env_millis, env_str

_SESSION_DEFAULTS = SessionRegistryConfig()


@dataclass(frozen=True)
class SessionSettings:
    max_age_ms: int
    inactivity_timeout_ms: int
    cleanup_interval_ms: int
    max_sessions: int
    codec: str
    encryption_key: str | None

    def to_registry_config(self) -> SessionRegistryConfig:
        return SessionRegistryConfig(
            max_age_ms=self.max_age_ms,
            inactivity_timeout_ms=self.inactivity_timeout_ms,
            cleanup_interval_ms=self.cleanup_interval_ms,
            max_sessions=self.max_sessions,
        )

    def build_codec(self) -> PayloadCodec:
        return build_codec(self.codec, self.encryption_key)


@dataclass(frozen=True)
class SecuritySettings:
    session: SessionSettings
    max_file_size: int
    rate_limit_overrides: Dict[Endpoint, RateLimitConfig] = field(default_factory=dict)


def _rate_limit_overrides() -> Dict[Endpoint, RateLimitConfig]:
    """Read ``CVGUARD_RATE_LIMIT_<ENDPOINT>_{WINDOW_MS,MAX_REQUESTS}`` for each endpoint."""
    overrides: Dict[Endpoint, RateLimitConfig] = {}
    for endpoint, default in DEFAULT_RATE_LIMIT_CONFIGS.items():
        prefix = f"CVGUARD_RATE_LIMIT_{endpoint.name}"
        window_ms = env_millis(f"{prefix}_WINDOW_MS")
        max_requests = env_int(f"{prefix}_MAX_REQUESTS")
        if window_ms is None and max_requests is None:
            continue
        try:
            overrides[endpoint] = RateLimitConfig(
                window_ms=window_ms if window_ms is not None else default.window_ms,
                max_requests=max_requests if max_requests is not None else default.max_requests,
            )
        except ValueError as exc:
            raise ConfigurationError(f"{prefix}: {exc}") from exc
    return overrides


@lru_cache(maxsize=1)
def load_security_settings() -> SecuritySettings:
    session = SessionSettings(
        max_age_ms=int(env_millis("CVGUARD_SESSION_MAX_AGE_MS", or_value=int(_SESSION_DEFAULTS.max_age_ms))),
        inactivity_timeout_ms=int(
            env_millis(
                "CVGUARD_SESSION_INACTIVITY_TIMEOUT_MS",
                or_value=int(_SESSION_DEFAULTS.inactivity_timeout_ms),
            )
        ),
        cleanup_interval_ms=int(
            env_millis(
                "CVGUARD_SESSION_CLEANUP_INTERVAL_MS",
                or_value=int(_SESSION_DEFAULTS.cleanup_interval_ms),
            )
        ),
        max_sessions=int(env_int("CVGUARD_MAX_SESSIONS", or_value=_SESSION_DEFAULTS.max_sessions)),
        codec=str(env_str("CVGUARD_SESSION_CODEC", or_value="plain")).lower(),
        encryption_key=env_str("CVGUARD_SESSION_ENCRYPTION_KEY"),
    )
    settings = SecuritySettings(
        session=session,
        max_file_size=int(env_int("CVGUARD_MAX_FILE_SIZE", or_value=DEFAULT_MAX_FILE_SIZE)),
        rate_limit_overrides=_rate_limit_overrides(),
    )
    problems = validate_security_settings(settings)
    if problems:
        raise ConfigurationError.invalid_settings(problems)
    return settings


def validate_security_settings(settings: SecuritySettings) -> List[str]:
    """Return every problem found; an empty list means the settings are usable."""
    problems: List[str] = []
    session = settings.session
    for name in ("max_age_ms", "inactivity_timeout_ms", "cleanup_interval_ms"):
        if getattr(session, name) <= 0:
            problems.append(f"session {name} must be positive")
    if session.max_sessions < 1:
        problems.append("max_sessions must be at least 1")
    if session.codec not in CODEC_NAMES:
        problems.append(f"unknown session codec {session.codec!r}")
    elif session.codec != "plain" and not session.encryption_key:
        problems.append(f"session codec {session.codec!r} requires an encryption key")
    if settings.max_file_size <= 0:
        problems.append("max_file_size must be positive")
    return problems


__all__ = ["SecuritySettings", "SessionSettings", "load_security_settings", "validate_security_settings"]
