"""Tests for the fixed-window rate limiter."""

import pytest

from cvguard.errors import RateLimitExceededError, ValidationFailureError
from cvguard.rate_limiter import RateLimiter, rate_limited
from cvguard.rate_limiter_helpers import (
    DEFAULT_RATE_LIMIT_CONFIGS,
    Endpoint,
    RateLimitConfig,
    RateLimitResult,
    build_rate_limit_key,
    format_rate_limit_message,
)

pytestmark = pytest.mark.unit


class TestCheckLimit:
    def test_third_request_in_window_is_blocked(self, manual_clock):
        limiter = RateLimiter(clock=manual_clock)
        config = RateLimitConfig(window_ms=1000, max_requests=2)

        first = limiter.check_limit("s1:UPLOAD", config)
        manual_clock.advance(100)
        second = limiter.check_limit("s1:UPLOAD", config)
        manual_clock.advance(100)
        third = limiter.check_limit("s1:UPLOAD", config)

        assert (first.allowed, first.remaining) == (True, 1)
        assert (second.allowed, second.remaining) == (True, 0)
        assert third.allowed is False
        assert third.remaining == 0
        assert third.retry_after_ms == 800
        assert third.reset_time == first.reset_time

    def test_window_resets_after_reset_at(self, manual_clock):
        limiter = RateLimiter(clock=manual_clock)
        config = RateLimitConfig(window_ms=1000, max_requests=1)

        assert limiter.check_limit("k", config).allowed
        assert not limiter.check_limit("k", config).allowed
        manual_clock.advance(1000)
        result = limiter.check_limit("k", config)

        assert result.allowed
        assert result.remaining == 0
        assert result.reset_time == manual_clock.now_ms() + 1000

    def test_admissions_never_exceed_budget_within_a_window(self, manual_clock):
        limiter = RateLimiter(clock=manual_clock)
        config = RateLimitConfig(window_ms=5000, max_requests=7)

        allowed = 0
        for _ in range(50):
            if limiter.check_limit("burst", config).allowed:
                allowed += 1
            manual_clock.advance(50)

        assert allowed == 7

    def test_keys_are_independent(self, manual_clock):
        limiter = RateLimiter(clock=manual_clock)
        config = RateLimitConfig(window_ms=1000, max_requests=1)

        assert limiter.check_limit("a", config).allowed
        assert limiter.check_limit("b", config).allowed
        assert not limiter.check_limit("a", config).allowed

    def test_stats_count_checks_and_blocks(self, manual_clock):
        limiter = RateLimiter(clock=manual_clock)
        config = RateLimitConfig(window_ms=1000, max_requests=1)
        limiter.check_limit("a", config)
        limiter.check_limit("a", config)

        assert limiter.stats == {"tracked_keys": 1, "total_checks": 2, "total_blocked": 1}


class TestSweep:
    def test_sweep_removes_only_elapsed_entries(self, manual_clock):
        limiter = RateLimiter(clock=manual_clock)
        limiter.check_limit("short", RateLimitConfig(window_ms=100, max_requests=1))
        limiter.check_limit("long", RateLimitConfig(window_ms=10_000, max_requests=1))
        manual_clock.advance(500)

        assert limiter.sweep() == 1
        assert limiter.get_entry("short") is None
        assert limiter.get_entry("long") is not None
        assert len(limiter) == 1

    @pytest.mark.asyncio
    async def test_start_and_destroy_manage_the_sweeper(self, manual_clock):
        limiter = RateLimiter(clock=manual_clock, sweep_interval_ms=10_000)
        limiter.check_limit("k", RateLimitConfig(window_ms=100, max_requests=1))

        limiter.start()
        assert limiter._sweeper.is_running()
        await limiter.destroy()

        assert not limiter._sweeper.is_running()
        assert len(limiter) == 0


class TestEndpoints:
    def test_check_endpoint_uses_preset(self, manual_clock):
        limiter = RateLimiter(clock=manual_clock)
        results = [limiter.check_endpoint("session_1_abc", Endpoint.ANALYSIS) for _ in range(4)]

        assert [r.allowed for r in results] == [True, True, True, False]
        entry = limiter.get_entry("session_1_abc:ANALYSIS")
        assert entry is not None
        assert entry.reset_at - entry.window_start == DEFAULT_RATE_LIMIT_CONFIGS[Endpoint.ANALYSIS].window_ms

    def test_overrides_replace_preset_fields(self, manual_clock):
        limiter = RateLimiter(clock=manual_clock)
        config = limiter.config_for(Endpoint.CHAT, {"max_requests": 2})

        assert config.max_requests == 2
        assert config.window_ms == DEFAULT_RATE_LIMIT_CONFIGS[Endpoint.CHAT].window_ms

    def test_unknown_override_keys_are_rejected(self, manual_clock):
        limiter = RateLimiter(clock=manual_clock)

        with pytest.raises(ValidationFailureError) as exc_info:
            limiter.check_endpoint("session_1_abc", Endpoint.CHAT, {"max_request": 2, "burst": 1})

        assert exc_info.value.field == "overrides"
        assert exc_info.value.errors == [
            "Unknown rate limit override: burst",
            "Unknown rate limit override: max_request",
        ]
        assert limiter.get_entry("session_1_abc:CHAT") is None

    def test_invalid_override_values_are_rejected(self, manual_clock):
        limiter = RateLimiter(clock=manual_clock)

        with pytest.raises(ValidationFailureError, match="max_requests must be positive"):
            limiter.config_for(Endpoint.CHAT, {"max_requests": 0})

    def test_constructor_configs_override_presets(self, manual_clock):
        custom = RateLimitConfig(window_ms=1000, max_requests=1)
        limiter = RateLimiter(clock=manual_clock, endpoint_configs={Endpoint.UPLOAD: custom})

        assert limiter.config_for(Endpoint.UPLOAD) is custom
        assert limiter.config_for(Endpoint.CHAT) == DEFAULT_RATE_LIMIT_CONFIGS[Endpoint.CHAT]


def test_build_rate_limit_key_strips_unsafe_characters():
    assert build_rate_limit_key("user:1/../x", Endpoint.UPLOAD) == "user1x:UPLOAD"
    assert build_rate_limit_key("a b", "custom:op") == "ab:customop"


@pytest.mark.parametrize(
    "retry_after_ms, expected",
    [
        (1000, "Too many requests. Please try again in 1 second."),
        (1001, "Too many requests. Please try again in 2 seconds."),
        (60_000, "Too many requests. Please try again in 60 seconds."),
        (61_000, "Too many requests. Please try again in 2 minutes."),
        (None, "Too many requests. Please try again in 0 seconds."),
    ],
)
def test_format_rate_limit_message(retry_after_ms, expected):
    result = RateLimitResult(allowed=False, remaining=0, reset_time=0, retry_after_ms=retry_after_ms)
    assert format_rate_limit_message(result) == expected


def test_rate_limit_config_rejects_non_positive_values():
    with pytest.raises(ValueError):
        RateLimitConfig(window_ms=0, max_requests=1)
    with pytest.raises(ValueError):
        RateLimitConfig(window_ms=10, max_requests=0)


@pytest.mark.asyncio
async def test_rate_limited_decorator_blocks_before_invoking(manual_clock):
    limiter = RateLimiter(clock=manual_clock, endpoint_configs={Endpoint.UPLOAD: RateLimitConfig(1000, 1)})
    calls = []

    @rate_limited(limiter, lambda: "session_1_abc", Endpoint.UPLOAD)
    async def upload(name):
        calls.append(name)
        return name.upper()

    assert await upload("cv.pdf") == "CV.PDF"
    with pytest.raises(RateLimitExceededError) as excinfo:
        await upload("again.pdf")

    assert calls == ["cv.pdf"]
    assert excinfo.value.code == "RATE_LIMIT_EXCEEDED"
    assert excinfo.value.retry_after_ms == 1000
    assert "1 second" in str(excinfo.value)
