"""
Throttle & Lockout Engine
=========================
Per-identity abuse prevention for the OTP channel: request counters,
cooldowns, spam locks and attempt lockouts.

All coordination happens through the store's atomic ``INCR``; counters are
never read-modify-written, so concurrent requests from any number of service
instances serialize through the counter instead of racing past a check.
"""

import asyncio
from typing import Optional
import structlog

from .config import ThrottleConfig
from .keys import OTPKeys, mask_identity, normalize_identity
from .results import FailureKind, Result, surface_store_errors
from .store import EphemeralStore

logger = structlog.get_logger(__name__)

LOCK_VALUE = "locked"


class ThrottleEngine:
    """Owns RequestCounter, SpamLock, Cooldown, FailedAttemptCounter and AttemptLock."""

    def __init__(self, store: EphemeralStore, config: Optional[ThrottleConfig] = None):
        self.store = store
        self.config = config or ThrottleConfig()

    async def _increment_window(self, key: str, window_seconds: int) -> int:
        """Atomically increment a windowed counter, starting its TTL on first use."""
        count = await self.store.incr(key)
        # A counter left without expiry by an earlier failed EXPIRE gets one now
        if count == 1 or await self.store.ttl(key) is None:
            await self.store.expire(key, window_seconds)
        return count

    async def _count_issuance(self, identity: str) -> int:
        """
        Increment the hourly request counter and create a SpamLock when it
        first passes the threshold. Returns the new count.
        """
        count = await self._increment_window(
            OTPKeys.request_count(identity),
            self.config.request_window_seconds,
        )
        if count == self.config.max_requests + 1:
            await self.store.set(
                OTPKeys.spam_lock(identity),
                LOCK_VALUE,
                self.config.spam_lock_seconds,
            )
        return count

    @surface_store_errors
    async def check_issuance_allowed(self, identity: str) -> Result[None]:
        """
        Check whether a new OTP may be issued.

        Reads AttemptLock, SpamLock and Cooldown concurrently and fails with
        the first one present, in that order of precedence.
        """
        identity = normalize_identity(identity)
        checks = (
            (OTPKeys.attempt_lock(identity), FailureKind.LOCKED),
            (OTPKeys.spam_lock(identity), FailureKind.SPAM_LOCKED),
            (OTPKeys.cooldown(identity), FailureKind.COOLING),
        )
        values = await asyncio.gather(*(self.store.get(key) for key, _ in checks))

        for (key, kind), value in zip(checks, values):
            if value is not None:
                retry_after = await self.store.ttl(key)
                logger.info(
                    "OTP issuance blocked",
                    identity=mask_identity(identity),
                    reason=kind.value,
                    retry_after=retry_after,
                )
                return Result.fail(kind, retry_after=retry_after)

        return Result.success()

    @surface_store_errors
    async def record_issuance_request(self, identity: str) -> Result[int]:
        """
        Count an issuance request against the hourly window.

        Returns:
            Result with the request count, or SPAM_LOCKED once the count
            exceeds the threshold
        """
        identity = normalize_identity(identity)
        count = await self._count_issuance(identity)

        if count > self.config.max_requests:
            logger.warning(
                "OTP spam lock engaged",
                identity=mask_identity(identity),
                requests=count,
                limit=self.config.max_requests,
            )
            return Result.fail(
                FailureKind.SPAM_LOCKED,
                retry_after=self.config.spam_lock_seconds,
            )

        return Result.success(count)

    @surface_store_errors
    async def record_verification_failure(self, identity: str) -> Result[None]:
        """
        Record a wrong code.

        Returns:
            INVALID with ``attempts_remaining`` while under the threshold;
            LOCKED once it is reached, after creating an AttemptLock and then
            dropping the challenge and the failure counter
        """
        identity = normalize_identity(identity)
        failed_key = OTPKeys.failed_attempts(identity)
        failures = await self._increment_window(failed_key, self.config.failed_window_seconds)

        if self.config.count_failures_toward_issuance and not await self.store.exists(
            OTPKeys.spam_lock(identity)
        ):
            await self._count_issuance(identity)

        if failures >= self.config.max_failed_attempts:
            await self.store.set(
                OTPKeys.attempt_lock(identity),
                LOCK_VALUE,
                self.config.lock_seconds,
            )
            await self.store.delete(OTPKeys.challenge(identity), failed_key)
            logger.warning(
                "OTP attempt lock engaged",
                identity=mask_identity(identity),
                failures=failures,
            )
            return Result.fail(FailureKind.LOCKED, retry_after=self.config.lock_seconds)

        remaining = self.config.max_failed_attempts - failures
        logger.info(
            "Invalid OTP attempt",
            identity=mask_identity(identity),
            attempts_remaining=remaining,
        )
        return Result.fail(FailureKind.INVALID, attempts_remaining=remaining)

    @surface_store_errors
    async def clear_after_success(self, identity: str) -> Result[bool]:
        """
        Drop the challenge and failure counter after a successful verification.

        Cooldown, RequestCounter and SpamLock are left to decay by TTL.

        Returns:
            Result with True if this call removed the challenge. Of several
            concurrent callers only one gets True.
        """
        identity = normalize_identity(identity)
        removed = await self.store.delete(OTPKeys.challenge(identity))
        await self.store.delete(OTPKeys.failed_attempts(identity))
        return Result.success(removed > 0)

    @surface_store_errors
    async def is_locked(self, identity: str) -> Result[bool]:
        """Whether an AttemptLock is present for the identity."""
        identity = normalize_identity(identity)
        return Result.success(await self.store.exists(OTPKeys.attempt_lock(identity)))
