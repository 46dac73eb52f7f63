from dataclasses import replace

import pytest

from cvguard.config import ConfigurationError
from cvguard.config.redis import load_redis_settings
from cvguard.config.security import load_security_settings, validate_security_settings
from cvguard.rate_limiter_helpers import Endpoint
from cvguard.session_registry_helpers import FernetCodec, PlainCodec, XorObfuscationCodec

pytestmark = pytest.mark.unit


_SETTINGS_ENV = (
    "REDIS_HOST",
    "REDIS_PORT",
    "REDIS_DB",
    "REDIS_PASSWORD",
    "REDIS_SSL",
    "REDIS_SOCKET_TIMEOUT",
    "CVGUARD_REDIS_NAMESPACE",
    "CVGUARD_MAX_SESSIONS",
    "CVGUARD_MAX_FILE_SIZE",
    "CVGUARD_SESSION_CODEC",
    "CVGUARD_SESSION_ENCRYPTION_KEY",
)


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    load_security_settings.cache_clear()
    load_redis_settings.cache_clear()
    yield
    load_security_settings.cache_clear()
    load_redis_settings.cache_clear()


class TestSecuritySettings:
    def test_defaults(self):
        settings = load_security_settings()

        assert settings.session.max_sessions == 5
        assert settings.session.codec == "plain"
        assert settings.max_file_size == 10 * 1024 * 1024
        assert settings.rate_limit_overrides == {}
        assert isinstance(settings.session.build_codec(), PlainCodec)
        assert settings.session.to_registry_config().max_age_ms == 24 * 60 * 60 * 1000

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("CVGUARD_MAX_SESSIONS", "2")
        monkeypatch.setenv("CVGUARD_SESSION_CODEC", "XOR")
        monkeypatch.setenv("CVGUARD_SESSION_ENCRYPTION_KEY", "k3y")
        monkeypatch.setenv("CVGUARD_RATE_LIMIT_UPLOAD_MAX_REQUESTS", "1")

        settings = load_security_settings()

        assert settings.session.to_registry_config().max_sessions == 2
        assert isinstance(settings.session.build_codec(), XorObfuscationCodec)
        upload = settings.rate_limit_overrides[Endpoint.UPLOAD]
        assert (upload.window_ms, upload.max_requests) == (15 * 60 * 1000, 1)

    def test_fernet_key_round_trip(self, monkeypatch):
        monkeypatch.setenv("CVGUARD_SESSION_CODEC", "fernet")
        monkeypatch.setenv("CVGUARD_SESSION_ENCRYPTION_KEY", FernetCodec.generate_key())

        assert isinstance(load_security_settings().session.build_codec(), FernetCodec)

    def test_codec_without_key_is_rejected(self, monkeypatch):
        monkeypatch.setenv("CVGUARD_SESSION_CODEC", "fernet")

        with pytest.raises(ConfigurationError, match="requires an encryption key"):
            load_security_settings()

    def test_invalid_rate_limit_override(self, monkeypatch):
        monkeypatch.setenv("CVGUARD_RATE_LIMIT_CHAT_MAX_REQUESTS", "0")

        with pytest.raises(ConfigurationError, match="CVGUARD_RATE_LIMIT_CHAT"):
            load_security_settings()

    def test_validate_collects_every_problem(self):
        settings = load_security_settings()
        broken = replace(
            settings,
            max_file_size=0,
            session=replace(settings.session, max_sessions=0, codec="rot13", max_age_ms=0),
        )

        assert validate_security_settings(broken) == [
            "session max_age_ms must be positive",
            "max_sessions must be at least 1",
            "unknown session codec 'rot13'",
            "max_file_size must be positive",
        ]


class TestRedisSettings:
    def test_defaults(self):
        settings = load_redis_settings()

        assert (settings.host, settings.port, settings.db) == ("localhost", 6379, 0)
        assert settings.password is None
        assert settings.namespace == "cvguard"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("REDIS_HOST", "cache")
        monkeypatch.setenv("REDIS_SSL", "true")
        monkeypatch.setenv("REDIS_SOCKET_TIMEOUT", "1.5")
        monkeypatch.setenv("CVGUARD_REDIS_NAMESPACE", "tabs")

        settings = load_redis_settings()

        assert settings.host == "cache"
        assert settings.ssl is True
        assert settings.socket_timeout == 1.5
        assert settings.namespace == "tabs"

    @pytest.mark.parametrize(("name", "value"), [("REDIS_PORT", "70000"), ("REDIS_DB", "-1")])
    def test_invalid_values(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ConfigurationError):
            load_redis_settings()
