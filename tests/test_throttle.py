"""
Tests for the throttle and lockout engine.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from otp_core.config import ThrottleConfig
from otp_core.errors import StoreUnavailableError
from otp_core.keys import OTPKeys
from otp_core.results import FailureKind
from otp_core.store import InMemoryStore
from otp_core.throttle import ThrottleEngine

EMAIL = "a@x.com"


class JournalingStore(InMemoryStore):
    """In-memory store that journals writes and can fail EXPIRE once."""

    def __init__(self, clock):
        super().__init__(clock=clock)
        self.writes = []
        self.fail_next_expire = False

    async def set(self, key, value, ttl_seconds):
        self.writes.append(("set", key))
        await super().set(key, value, ttl_seconds)

    async def delete(self, *keys):
        self.writes.extend(("delete", key) for key in keys)
        return await super().delete(*keys)

    async def expire(self, key, ttl_seconds):
        if self.fail_next_expire:
            self.fail_next_expire = False
            raise StoreUnavailableError("Redis EXPIRE failed")
        return await super().expire(key, ttl_seconds)


class TestCheckIssuanceAllowed:
    """Tests for lock and cooldown checks."""

    @pytest.mark.asyncio
    async def test_clear_identity_allowed(self, throttle):
        """No locks should mean issuance is allowed."""
        result = await throttle.check_issuance_allowed(EMAIL)

        assert result.ok is True

    @pytest.mark.asyncio
    async def test_precedence_lock_over_spam_over_cooldown(self, throttle, store):
        """An attempt lock should outrank a spam lock, which outranks a cooldown."""
        await store.set(OTPKeys.cooldown(EMAIL), "true", 60)
        assert (await throttle.check_issuance_allowed(EMAIL)).failure is FailureKind.COOLING

        await store.set(OTPKeys.spam_lock(EMAIL), "locked", 3600)
        assert (await throttle.check_issuance_allowed(EMAIL)).failure is FailureKind.SPAM_LOCKED

        await store.set(OTPKeys.attempt_lock(EMAIL), "locked", 3600)
        result = await throttle.check_issuance_allowed(EMAIL)

        assert result.failure is FailureKind.LOCKED
        assert result.retry_after == 3600

    @pytest.mark.asyncio
    async def test_check_has_no_side_effects(self, throttle, store):
        """Checking should not create any state."""
        await throttle.check_issuance_allowed(EMAIL)

        assert await store.get(OTPKeys.request_count(EMAIL)) is None

    @pytest.mark.asyncio
    async def test_identity_is_normalized(self, throttle, store):
        """Mixed-case emails should hit the same keys."""
        await store.set(OTPKeys.cooldown(EMAIL), "true", 60)

        result = await throttle.check_issuance_allowed("  A@X.com ")

        assert result.failure is FailureKind.COOLING


class TestRecordIssuanceRequest:
    """Tests for the hourly request counter."""

    @pytest.mark.asyncio
    async def test_first_request_starts_window(self, throttle, store):
        """The first increment should set the one-hour TTL."""
        result = await throttle.record_issuance_request(EMAIL)

        assert result.ok is True
        assert result.value == 1
        assert await store.ttl(OTPKeys.request_count(EMAIL)) == 3600

    @pytest.mark.asyncio
    async def test_fourth_request_spam_locks(self, throttle, store):
        """Exceeding three requests should create a spam lock."""
        for _ in range(3):
            assert (await throttle.record_issuance_request(EMAIL)).ok is True

        result = await throttle.record_issuance_request(EMAIL)

        assert result.failure is FailureKind.SPAM_LOCKED
        assert await store.get(OTPKeys.spam_lock(EMAIL)) == "locked"
        assert await store.ttl(OTPKeys.spam_lock(EMAIL)) == 3600

    @pytest.mark.asyncio
    async def test_window_resets_after_expiry(self, throttle, clock):
        """The counter should start over once its window lapses."""
        for _ in range(3):
            await throttle.record_issuance_request(EMAIL)

        clock.advance(3600)
        result = await throttle.record_issuance_request(EMAIL)

        assert result.ok is True
        assert result.value == 1

    @pytest.mark.asyncio
    async def test_concurrent_requests_count_exactly(self, throttle, store):
        """Concurrent increments should never lose a count."""
        results = await asyncio.gather(*(throttle.record_issuance_request(EMAIL) for _ in range(50)))

        accepted = [r for r in results if r.ok]
        assert len(accepted) == 3
        assert sorted(r.value for r in accepted) == [1, 2, 3]
        assert all(r.failure is FailureKind.SPAM_LOCKED for r in results if not r.ok)
        assert await store.get(OTPKeys.request_count(EMAIL)) == "50"

    @pytest.mark.asyncio
    async def test_spam_lock_not_refreshed(self, throttle, store, clock):
        """Requests past the lock-creating one should not extend the spam lock."""
        for _ in range(4):
            await throttle.record_issuance_request(EMAIL)
        clock.advance(30)

        result = await throttle.record_issuance_request(EMAIL)

        assert result.failure is FailureKind.SPAM_LOCKED
        assert await store.ttl(OTPKeys.spam_lock(EMAIL)) == 3570

    @pytest.mark.asyncio
    async def test_counter_without_expiry_gets_window(self, clock):
        """A counter whose first EXPIRE failed should get its window on the next increment."""
        store = JournalingStore(clock)
        store.fail_next_expire = True
        throttle = ThrottleEngine(store, ThrottleConfig(count_failures_toward_issuance=False))

        first = await throttle.record_issuance_request(EMAIL)
        assert first.failure is FailureKind.STORE_UNAVAILABLE
        assert await store.ttl(OTPKeys.request_count(EMAIL)) is None

        second = await throttle.record_issuance_request(EMAIL)

        assert second.value == 2
        assert await store.ttl(OTPKeys.request_count(EMAIL)) == 3600


class TestRecordVerificationFailure:
    """Tests for failed-attempt counting and lockout."""

    @pytest.mark.asyncio
    async def test_failures_count_down(self, throttle):
        """Should report remaining attempts before the lock."""
        first = await throttle.record_verification_failure(EMAIL)
        second = await throttle.record_verification_failure(EMAIL)

        assert first.failure is FailureKind.INVALID
        assert first.attempts_remaining == 2
        assert second.attempts_remaining == 1

    @pytest.mark.asyncio
    async def test_third_failure_locks(self, throttle, store):
        """The third failure should drop the challenge and counter and lock."""
        await store.set(OTPKeys.challenge(EMAIL), '{"otp_hash":"ab","salt":"cd","purpose":"registration"}', 300)

        await throttle.record_verification_failure(EMAIL)
        await throttle.record_verification_failure(EMAIL)
        result = await throttle.record_verification_failure(EMAIL)

        assert result.failure is FailureKind.LOCKED
        assert result.retry_after == 3600
        assert await store.get(OTPKeys.challenge(EMAIL)) is None
        assert await store.get(OTPKeys.failed_attempts(EMAIL)) is None
        assert await store.get(OTPKeys.attempt_lock(EMAIL)) == "locked"

    @pytest.mark.asyncio
    async def test_failures_do_not_touch_issuance_counter_by_default(self, throttle, store):
        """Without coupling, failures should leave the request counter alone."""
        await throttle.record_verification_failure(EMAIL)

        assert await store.get(OTPKeys.request_count(EMAIL)) is None

    @pytest.mark.asyncio
    async def test_failures_count_toward_issuance_when_configured(self, store):
        """With coupling enabled, failures should increment the request counter."""
        throttle = ThrottleEngine(store, ThrottleConfig(count_failures_toward_issuance=True))

        await throttle.record_verification_failure(EMAIL)
        await throttle.record_verification_failure(EMAIL)

        assert await store.get(OTPKeys.request_count(EMAIL)) == "2"
        assert await store.ttl(OTPKeys.request_count(EMAIL)) == 3600

    @pytest.mark.asyncio
    async def test_coupled_failures_skip_while_spam_locked(self, store, clock):
        """With coupling, failures should neither count nor extend an existing spam lock."""
        throttle = ThrottleEngine(store, ThrottleConfig(count_failures_toward_issuance=True))
        for _ in range(4):
            await throttle.record_issuance_request(EMAIL)
        clock.advance(30)

        await throttle.record_verification_failure(EMAIL)
        await throttle.record_verification_failure(EMAIL)

        assert await store.get(OTPKeys.request_count(EMAIL)) == "4"
        assert await store.ttl(OTPKeys.spam_lock(EMAIL)) == 3570

    @pytest.mark.asyncio
    async def test_lock_set_before_challenge_dropped(self, clock):
        """The attempt lock should exist before the challenge is deleted."""
        store = JournalingStore(clock)
        throttle = ThrottleEngine(store, ThrottleConfig(count_failures_toward_issuance=False))

        for _ in range(3):
            await throttle.record_verification_failure(EMAIL)

        lock_write = store.writes.index(("set", OTPKeys.attempt_lock(EMAIL)))
        challenge_delete = store.writes.index(("delete", OTPKeys.challenge(EMAIL)))
        assert lock_write < challenge_delete


class TestClearAfterSuccess:
    """Tests for post-verification cleanup."""

    @pytest.mark.asyncio
    async def test_clears_only_challenge_state(self, throttle, store):
        """Abuse counters should survive a successful verification."""
        await store.set(OTPKeys.challenge(EMAIL), "x", 300)
        await store.set(OTPKeys.failed_attempts(EMAIL), "2", 3600)
        await store.set(OTPKeys.cooldown(EMAIL), "true", 60)
        await store.set(OTPKeys.request_count(EMAIL), "2", 3600)
        await store.set(OTPKeys.spam_lock(EMAIL), "locked", 3600)

        result = await throttle.clear_after_success(EMAIL)

        assert result.ok is True
        assert result.value is True
        assert await store.get(OTPKeys.challenge(EMAIL)) is None
        assert await store.get(OTPKeys.failed_attempts(EMAIL)) is None
        assert await store.get(OTPKeys.cooldown(EMAIL)) == "true"
        assert await store.get(OTPKeys.request_count(EMAIL)) == "2"
        assert await store.get(OTPKeys.spam_lock(EMAIL)) == "locked"

    @pytest.mark.asyncio
    async def test_reports_challenge_already_gone(self, throttle, store):
        """Only the call that removes the challenge should report it."""
        await store.set(OTPKeys.challenge(EMAIL), "x", 300)

        first, second = await asyncio.gather(
            throttle.clear_after_success(EMAIL),
            throttle.clear_after_success(EMAIL),
        )

        assert sorted([first.value, second.value]) == [False, True]

    @pytest.mark.asyncio
    async def test_is_locked(self, throttle):
        """Should report the attempt lock once the threshold is reached."""
        assert (await throttle.is_locked(EMAIL)).value is False

        for _ in range(3):
            await throttle.record_verification_failure(EMAIL)

        assert (await throttle.is_locked("A@X.COM")).value is True


class TestStoreUnavailable:
    """Tests for store outages."""

    @pytest.mark.asyncio
    async def test_outage_becomes_result(self):
        """An unreachable store should surface as STORE_UNAVAILABLE, not an exception."""
        store = AsyncMock()
        store.incr.side_effect = StoreUnavailableError("Redis INCR failed")
        throttle = ThrottleEngine(store)

        result = await throttle.record_issuance_request(EMAIL)

        assert result.failure is FailureKind.STORE_UNAVAILABLE
        assert result.retryable is True
