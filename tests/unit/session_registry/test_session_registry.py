"""Tests for the secure session registry."""

import asyncio

import orjson
import pytest

from cvguard.errors import SessionInvalidError
from cvguard.sanitization import SESSION_ID_PATTERN
from cvguard.session_registry import SecureSessionRegistry
from cvguard.session_registry_helpers import InputEvent, SessionRegistryConfig, XorObfuscationCodec
from cvguard.session_registry_helpers.security_validator import FINGERPRINT_MISMATCH, SIGNATURE_CHANGED
from cvguard.storage import InMemoryStore, RedisStore

pytestmark = pytest.mark.unit

HOUR_MS = 60 * 60 * 1000


@pytest.fixture
def registry_config():
    return SessionRegistryConfig(
        max_age_ms=24 * HOUR_MS,
        inactivity_timeout_ms=2 * HOUR_MS,
        max_sessions=5,
        activity_throttle_ms=1000,
    )


@pytest.fixture
def registry(memory_store, registry_config, manual_clock, signal_provider, notifier):
    return SecureSessionRegistry(
        memory_store,
        registry_config,
        clock=manual_clock,
        signal_provider=signal_provider,
        notifier=notifier,
    )


@pytest.mark.asyncio
async def test_create_session_stores_sanitised_record(registry, memory_store, manual_clock):
    record = await registry.create_session({"name": "<b>Ada</b>", "size": 3, "tags": ["a", "b"]})

    assert SESSION_ID_PATTERN.match(record.session_id)
    assert record.session_id.startswith(f"session_{int(manual_clock.now_ms())}_")
    assert record.created_at == record.last_activity == manual_clock.now_ms()
    assert record.is_active
    assert record.metadata == {"name": "Ada", "size": 3, "tags": '["a","b"]'}

    stored = orjson.loads(memory_store.dump()["secure_cv_sessions"])
    assert [item["session_id"] for item in stored] == [record.session_id]


@pytest.mark.asyncio
async def test_session_ids_are_unique(registry):
    ids = {(await registry.create_session()).session_id for _ in range(5)}
    assert len(ids) == 5


@pytest.mark.asyncio
async def test_current_session_is_most_recently_active(registry, manual_clock):
    first = await registry.create_session()
    manual_clock.advance(10)
    second = await registry.create_session()
    manual_clock.advance(10)
    await registry.update_activity(first.session_id)

    current = await registry.get_current_session()

    assert current is not None
    assert current.session_id == first.session_id
    assert second.session_id != current.session_id


@pytest.mark.asyncio
async def test_current_session_is_none_without_active_sessions(registry):
    record = await registry.create_session()
    await registry.invalidate_session(record.session_id)

    assert await registry.get_current_session() is None
    stored = await registry.get_session(record.session_id)
    assert stored is not None
    assert stored.is_active is False


@pytest.mark.asyncio
async def test_update_activity_refreshes_and_reports_unknown_ids(registry, manual_clock):
    record = await registry.create_session()
    manual_clock.advance(500)

    assert await registry.update_activity(record.session_id) is True
    assert await registry.update_activity("session_1_missing") is False

    refreshed = await registry.get_session(record.session_id)
    assert refreshed.is_active
    assert refreshed.last_activity == manual_clock.now_ms()


@pytest.mark.asyncio
async def test_update_activity_does_not_reactivate_invalidated_session(registry, manual_clock):
    record = await registry.create_session()
    await registry.invalidate_session(record.session_id)
    manual_clock.advance(500)

    assert await registry.update_activity(record.session_id) is False

    stored = await registry.get_session(record.session_id)
    assert stored.is_active is False
    assert stored.last_activity == record.last_activity


class TestValidation:
    @pytest.mark.asyncio
    async def test_fresh_session_is_valid(self, registry):
        record = await registry.create_session()

        info = await registry.validate_session_security(record.session_id)

        assert info.is_valid
        assert info.security_score == 100
        assert info.warnings == ()

    @pytest.mark.asyncio
    async def test_environment_change_invalidates_session(self, registry, signal_provider):
        record = await registry.create_session()
        signal_provider.update(environment_signature="different-agent/2.0")

        info = await registry.validate_session_security(record.session_id)

        assert info.is_valid is False
        assert FINGERPRINT_MISMATCH in info.warnings
        assert SIGNATURE_CHANGED in info.warnings
        assert info.security_score <= 60

    @pytest.mark.asyncio
    async def test_fingerprint_only_change_keeps_score_above_threshold(self, registry, signal_provider):
        record = await registry.create_session()
        signal_provider.update(display_geometry="800x600")

        info = await registry.validate_session_security(record.session_id)

        assert info.warnings == (FINGERPRINT_MISMATCH,)
        assert info.security_score == 60
        assert info.is_valid

    @pytest.mark.asyncio
    async def test_expired_session_is_invalid_and_score_is_clamped(self, registry, manual_clock, signal_provider):
        record = await registry.create_session()
        manual_clock.advance(25 * HOUR_MS)
        signal_provider.update(environment_signature="other", locale="fr-FR")

        info = await registry.validate_session_security(record.session_id)

        assert info.is_expired and info.is_inactive
        assert info.security_score == 0
        assert not info.is_valid
        assert len(info.warnings) == 4

    @pytest.mark.asyncio
    async def test_score_never_rises_with_more_findings(self, registry, manual_clock, signal_provider):
        record = await registry.create_session()
        scores = [(await registry.validate_session_security(record.session_id)).security_score]

        manual_clock.advance(3 * HOUR_MS)
        scores.append((await registry.validate_session_security(record.session_id)).security_score)
        signal_provider.update(display_geometry="1x1")
        scores.append((await registry.validate_session_security(record.session_id)).security_score)
        signal_provider.update(environment_signature="changed")
        scores.append((await registry.validate_session_security(record.session_id)).security_score)
        manual_clock.advance(24 * HOUR_MS)
        scores.append((await registry.validate_session_security(record.session_id)).security_score)

        assert scores == sorted(scores, reverse=True)
        assert scores == [100, 70, 30, 10, 0]

    @pytest.mark.asyncio
    async def test_unknown_and_malformed_ids(self, registry):
        missing = await registry.validate_session_security("session_123_abc")
        malformed = await registry.validate_session_security("<script>")

        assert missing.warnings == ("Session not found",)
        assert (missing.is_valid, missing.is_expired, missing.is_inactive, missing.security_score) == (False, True, True, 0)
        assert malformed.security_score == 0
        assert not malformed.is_valid

    @pytest.mark.asyncio
    async def test_ensure_valid_session_raises_and_notifies(self, registry, signal_provider, recording_sink):
        record = await registry.create_session()
        assert (await registry.ensure_valid_session(record.session_id)).session_id == record.session_id

        signal_provider.update(environment_signature="tampered")
        with pytest.raises(SessionInvalidError) as excinfo:
            await registry.ensure_valid_session(record.session_id)

        assert excinfo.value.code == "SESSION_INVALID"
        assert FINGERPRINT_MISMATCH in excinfo.value.warnings
        assert recording_sink.titles() == ["Session Error"]
        assert "refresh" in recording_sink.notifications[0].message


class TestLimits:
    @pytest.mark.asyncio
    async def test_sixth_session_evicts_the_oldest(self, registry, manual_clock):
        created = []
        for _ in range(6):
            created.append(await registry.create_session())
            manual_clock.advance(1000)

        sessions = await registry.get_all_sessions()
        active = [record for record in sessions if record.is_active]
        inactive = [record for record in sessions if not record.is_active]

        assert len(sessions) == 6
        assert len(active) == 5
        assert [record.session_id for record in inactive] == [created[0].session_id]

    @pytest.mark.asyncio
    async def test_activity_on_evicted_session_keeps_the_cap(self, registry, manual_clock):
        created = []
        for _ in range(6):
            created.append(await registry.create_session())
            manual_clock.advance(1000)

        assert await registry.update_activity(created[0].session_id) is False

        sessions = await registry.get_all_sessions()
        active = [record.session_id for record in sessions if record.is_active]
        assert len(active) == 5
        assert created[0].session_id not in active

    @pytest.mark.asyncio
    async def test_eviction_follows_last_activity_not_creation(self, registry, manual_clock):
        created = []
        for _ in range(5):
            created.append(await registry.create_session())
            manual_clock.advance(1000)
        await registry.update_activity(created[0].session_id)
        manual_clock.advance(1000)

        await registry.create_session()

        inactive = [record.session_id for record in await registry.get_all_sessions() if not record.is_active]
        assert inactive == [created[1].session_id]

    @pytest.mark.asyncio
    async def test_ties_keep_the_newest_record(self, registry):
        created = [await registry.create_session() for _ in range(6)]

        inactive = [record.session_id for record in await registry.get_all_sessions() if not record.is_active]
        assert inactive == [created[0].session_id]
        assert created[-1].is_active

    @pytest.mark.asyncio
    async def test_enforce_is_noop_under_the_cap(self, registry):
        await registry.create_session()
        assert await registry.enforce_session_limits() == []


class TestCleanup:
    @pytest.mark.asyncio
    async def test_removes_only_expired_and_inactive_records(self, registry, manual_clock):
        stale = await registry.create_session()
        recent_but_old = await registry.create_session()
        manual_clock.advance(25 * HOUR_MS)
        await registry.update_activity(recent_but_old.session_id)
        fresh = await registry.create_session()

        removed = await registry.cleanup_expired_sessions()

        remaining = {record.session_id for record in await registry.get_all_sessions()}
        assert removed == 1
        assert remaining == {recent_but_old.session_id, fresh.session_id}
        assert stale.session_id not in remaining

    @pytest.mark.asyncio
    async def test_cleanup_is_idempotent(self, registry, manual_clock):
        await registry.create_session()
        manual_clock.advance(25 * HOUR_MS)
        await registry.create_session()

        await registry.cleanup_expired_sessions()
        after_first = await registry.get_all_sessions()
        assert await registry.cleanup_expired_sessions() == 0
        assert await registry.get_all_sessions() == after_first


class TestActivityTracking:
    @pytest.mark.asyncio
    async def test_coarse_events_update_current_session_with_throttle(self, registry, manual_clock):
        record = await registry.create_session()
        manual_clock.advance(5000)

        assert await registry.record_input_event(InputEvent.KEY_PRESS) is True
        manual_clock.advance(200)
        assert await registry.record_input_event(InputEvent.SCROLL) is False
        manual_clock.advance(1000)
        assert await registry.record_input_event(InputEvent.POINTER_MOVE) is False
        assert await registry.record_input_event(InputEvent.TOUCH_START) is True

        stored = await registry.get_session(record.session_id)
        assert stored.last_activity == manual_clock.now_ms()

    @pytest.mark.asyncio
    async def test_events_without_a_session_do_nothing(self, registry):
        assert await registry.record_input_event(InputEvent.POINTER_DOWN) is False

    @pytest.mark.asyncio
    async def test_heartbeat_touches_current_session(self, registry, manual_clock):
        record = await registry.create_session()
        manual_clock.advance(30_000)

        assert await registry.touch_current_session() == record.session_id
        assert (await registry.get_session(record.session_id)).last_activity == manual_clock.now_ms()


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_init_and_destroy_manage_background_tasks(self, registry, memory_store):
        async with registry:
            assert registry.initialized
            assert registry._cleanup_task.is_running()
            assert registry._heartbeat_task.is_running()
            assert registry.handle_store_change in memory_store._listeners

        assert not registry.initialized
        assert not registry._cleanup_task.is_running()
        assert not registry._heartbeat_task.is_running()
        assert memory_store._listeners == []

    @pytest.mark.asyncio
    async def test_init_runs_an_initial_cleanup(self, registry, manual_clock):
        await registry.create_session()
        manual_clock.advance(25 * HOUR_MS)

        await registry.init()
        try:
            assert await registry.get_all_sessions() == []
        finally:
            await registry.destroy()

    @pytest.mark.asyncio
    async def test_foreign_write_triggers_cleanup_in_other_tab(
        self, memory_store, registry_config, manual_clock, signal_provider
    ):
        tab_a = SecureSessionRegistry(memory_store, registry_config, clock=manual_clock, signal_provider=signal_provider)
        tab_b = SecureSessionRegistry(memory_store, registry_config, clock=manual_clock, signal_provider=signal_provider)
        await tab_a.init()
        await tab_b.init()
        try:
            await tab_a.create_session()
            await asyncio.sleep(0)
            manual_clock.advance(25 * HOUR_MS)
            calls = []
            original = tab_b.cleanup_expired_sessions

            async def tracked_cleanup():
                calls.append("b")
                return await original()

            tab_b.cleanup_expired_sessions = tracked_cleanup
            await tab_a.create_session()
            await asyncio.sleep(0)
            await asyncio.sleep(0)

            assert calls == ["b"]
            assert len(await tab_b.get_all_sessions()) == 1
        finally:
            await tab_a.destroy()
            await tab_b.destroy()

    @pytest.mark.asyncio
    async def test_write_from_another_process_triggers_cleanup(
        self, fake_redis, registry_config, manual_clock, signal_provider
    ):
        writer = SecureSessionRegistry(
            RedisStore(fake_redis), registry_config, clock=manual_clock, signal_provider=signal_provider
        )
        reader_store = RedisStore(fake_redis)
        reader = SecureSessionRegistry(reader_store, registry_config, clock=manual_clock, signal_provider=signal_provider)
        await reader.init()
        cleaned = asyncio.Event()
        original = reader.cleanup_expired_sessions

        async def tracked_cleanup():
            cleaned.set()
            return await original()

        reader.cleanup_expired_sessions = tracked_cleanup
        try:
            assert len(fake_redis._subscribers) == 1
            await writer.create_session()
            await asyncio.wait_for(cleaned.wait(), timeout=1)
        finally:
            await reader.destroy()

        assert fake_redis._subscribers == []
        assert not fake_redis.closed
        assert reader_store._listener_task is None

    @pytest.mark.asyncio
    async def test_own_writes_do_not_schedule_cleanup(self, registry):
        await registry.init()
        try:
            await registry.create_session()
            assert registry._pending == set()
        finally:
            await registry.destroy()


@pytest.mark.asyncio
async def test_obfuscated_payload_round_trips_and_garbage_reads_as_empty(manual_clock, signal_provider):
    store = InMemoryStore()
    registry = SecureSessionRegistry(
        store,
        clock=manual_clock,
        signal_provider=signal_provider,
        codec=XorObfuscationCodec("k3y"),
    )
    record = await registry.create_session({"role": "candidate"})

    raw = store.dump()["secure_cv_sessions"]
    assert record.session_id not in raw
    assert (await registry.get_session(record.session_id)).metadata == {"role": "candidate"}

    await store.set("secure_cv_sessions", "%%% not base64 %%%")
    assert await registry.get_all_sessions() == []
