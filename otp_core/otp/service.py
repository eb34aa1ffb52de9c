"""
OTP Service
===========
Issues, delivers and verifies OTP challenges, consulting the throttle engine
before issuing and recording failures through it while verifying.
"""

from typing import Optional
import structlog

from ..config import OTPConfig
from ..delivery.base import Deliverer, DeliveryPayload
from ..errors import DeliveryError
from ..keys import OTPKeys, mask_identity, normalize_identity
from ..results import FailureKind, Result, surface_store_errors
from ..store import EphemeralStore
from ..throttle import ThrottleEngine
from .hashing import generate_otp, generate_salt, hash_otp, verify_otp_hash
from .models import IssuedChallenge, OTPChallenge, Purpose

logger = structlog.get_logger(__name__)

COOLDOWN_VALUE = "true"


class OTPService:
    """
    OTP issuance and verification.

    Usage:
        service = OTPService(store, ThrottleEngine(store), deliverer)
        result = await service.check_and_issue("a@x.com", Purpose.REGISTRATION, "Alice")
        if not result.ok:
            ...  # result.failure is a FailureKind
    """

    def __init__(
        self,
        store: EphemeralStore,
        throttle: ThrottleEngine,
        deliverer: Deliverer,
        config: Optional[OTPConfig] = None,
    ):
        self.store = store
        self.throttle = throttle
        self.deliverer = deliverer
        self.config = config or OTPConfig()

    async def _load_challenge(self, identity: str) -> Optional[OTPChallenge]:
        key = OTPKeys.challenge(identity)
        raw = await self.store.get(key)
        if raw is None:
            return None
        try:
            return OTPChallenge.from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Discarding malformed OTP challenge", identity=mask_identity(identity), error=str(e))
            await self.store.delete(key)
            return None

    async def _store_challenge(self, identity: str, otp: str, purpose: Purpose, ttl_seconds: int) -> None:
        salt = generate_salt()
        challenge = OTPChallenge(otp_hash=hash_otp(otp, salt), salt=salt, purpose=purpose)
        await self.store.set(OTPKeys.challenge(identity), challenge.to_json(), ttl_seconds)

    async def _deliver(
        self,
        identity: str,
        purpose: Purpose,
        display_name: str,
        otp: str,
        expires_in: int,
    ) -> Result[IssuedChallenge]:
        issued = IssuedChallenge(identity=identity, purpose=purpose, expires_in=expires_in)
        try:
            await self.deliverer.deliver(identity, purpose, DeliveryPayload(display_name=display_name, otp=otp))
        except Exception as e:
            # Any deliverer error, typed or not, leaves the challenge verifiable
            logger.warning(
                "OTP delivery failed, challenge kept",
                identity=mask_identity(identity),
                purpose=purpose.value,
                deliverer=self.deliverer.name,
                error=str(e),
                exc_info=not isinstance(e, DeliveryError),
            )
            issued.delivered = False
            result: Result[IssuedChallenge] = Result.fail(FailureKind.DELIVERY_FAILED)
            result.value = issued
            return result
        return Result.success(issued)

    @surface_store_errors
    async def check_and_issue(
        self,
        identity: str,
        purpose: Purpose,
        display_name: str,
    ) -> Result[IssuedChallenge]:
        """
        Issue a new OTP challenge and deliver it.

        Any live challenge for the identity is replaced; its code becomes
        unverifiable. Only a salted hash of the code is stored.

        Args:
            identity: Email address
            purpose: Flow the code is for
            display_name: Name shown in the delivered message

        Returns:
            IssuedChallenge on success; LOCKED, SPAM_LOCKED, COOLING or
            DELIVERY_FAILED otherwise. On DELIVERY_FAILED the challenge is
            stored and still verifiable.
        """
        identity = normalize_identity(identity)
        purpose = Purpose(purpose)

        allowed = await self.throttle.check_issuance_allowed(identity)
        if not allowed.ok:
            return allowed

        counted = await self.throttle.record_issuance_request(identity)
        if not counted.ok:
            return counted

        otp = generate_otp(self.config.length)
        await self._store_challenge(identity, otp, purpose, self.config.expiry_seconds)
        await self.store.set(
            OTPKeys.cooldown(identity),
            COOLDOWN_VALUE,
            self.throttle.config.cooldown_seconds,
        )

        logger.info(
            "OTP challenge issued",
            identity=mask_identity(identity),
            purpose=purpose.value,
            expires_in=self.config.expiry_seconds,
        )
        if self.config.log_codes:
            logger.debug("DEV ONLY - OTP code", identity=identity, otp=otp)

        return await self._deliver(identity, purpose, display_name, otp, self.config.expiry_seconds)

    @surface_store_errors
    async def verify(
        self,
        identity: str,
        submitted_value: str,
        expected_purpose: Purpose,
    ) -> Result[None]:
        """
        Verify a submitted code against the live challenge.

        The challenge is single-use: of several concurrent correct
        submissions, only the one that deletes the challenge succeeds.

        Args:
            identity: Email address
            submitted_value: Code entered by the user
            expected_purpose: Flow the caller is completing

        Returns:
            ok on match (the challenge is consumed); LOCKED, EXPIRED or
            INVALID otherwise
        """
        identity = normalize_identity(identity)
        expected_purpose = Purpose(expected_purpose)

        lock_key = OTPKeys.attempt_lock(identity)
        if await self.store.exists(lock_key):
            return Result.fail(FailureKind.LOCKED, retry_after=await self.store.ttl(lock_key))

        challenge = await self._load_challenge(identity)
        if challenge is None:
            logger.info("OTP verification without live challenge", identity=mask_identity(identity))
            return Result.fail(FailureKind.EXPIRED)

        # A code issued for another flow is never accepted and does not burn an attempt
        if challenge.purpose is not expected_purpose:
            logger.warning(
                "OTP purpose mismatch",
                identity=mask_identity(identity),
                expected=expected_purpose.value,
                issued_for=challenge.purpose.value,
            )
            return Result.fail(FailureKind.INVALID)

        if not verify_otp_hash(str(submitted_value), challenge.salt, challenge.otp_hash):
            return await self.throttle.record_verification_failure(identity)

        cleared = await self.throttle.clear_after_success(identity)
        if not cleared.ok:
            return cleared
        if not cleared.value:
            logger.info("OTP already consumed", identity=mask_identity(identity))
            return Result.fail(FailureKind.EXPIRED)

        logger.info("OTP verified", identity=mask_identity(identity), purpose=expected_purpose.value)
        return Result.success()

    @surface_store_errors
    async def redeliver(
        self,
        identity: str,
        purpose: Purpose,
        display_name: str,
    ) -> Result[IssuedChallenge]:
        """
        Send a fresh code for the live challenge without extending it.

        The stored code is only a hash, so the resend carries a new code that
        replaces the old one under the challenge's remaining TTL. Attempt and
        spam locks apply, the cooldown does not, and the resend counts
        against the hourly request window.
        """
        identity = normalize_identity(identity)
        purpose = Purpose(purpose)

        allowed = await self.throttle.check_issuance_allowed(identity)
        if not allowed.ok and allowed.failure is not FailureKind.COOLING:
            return allowed

        counted = await self.throttle.record_issuance_request(identity)
        if not counted.ok:
            return counted

        challenge = await self._load_challenge(identity)
        remaining = await self.store.ttl(OTPKeys.challenge(identity))
        if challenge is None or not remaining or challenge.purpose is not purpose:
            return Result.fail(FailureKind.EXPIRED)

        otp = generate_otp(self.config.length)
        await self._store_challenge(identity, otp, purpose, remaining)
        logger.info("OTP challenge resent", identity=mask_identity(identity), purpose=purpose.value)
        if self.config.log_codes:
            logger.debug("DEV ONLY - OTP code", identity=identity, otp=otp)

        return await self._deliver(identity, purpose, display_name, otp, remaining)

    @surface_store_errors
    async def remaining_ttl(self, identity: str) -> Result[Optional[int]]:
        """Seconds left on the live challenge, or None when there is none."""
        identity = normalize_identity(identity)
        return Result.success(await self.store.ttl(OTPKeys.challenge(identity)))
