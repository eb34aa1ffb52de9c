"""
Identity Flows
==============
Registration, password reset and password login built on the OTP service,
token issuer and an injected identity store.

The identity store is owned by the surrounding application; this module only
calls it through ``IdentityStore``.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
import structlog

from .keys import OTPKeys, mask_identity, normalize_identity
from .otp import IssuedChallenge, OTPService, Purpose
from .passwords import hash_password, needs_rehash, verify_password
from .results import FailureKind, Result, surface_store_errors
from .store import EphemeralStore
from .tokens import SessionTokens, TokenIssuer

logger = structlog.get_logger(__name__)

PENDING_REGISTRATION_SECONDS = 300


@dataclass
class Identity:
    """A permanent identity record, as returned by the identity store."""
    id: str
    email: str
    name: str
    role: str = "buyer"
    password_hash: Optional[str] = None


class IdentityStore(ABC):
    """Permanent user record store, implemented by the application."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[Identity]:
        """Look up an identity by normalized email."""

    @abstractmethod
    async def create(self, email: str, name: str, password_hash: Optional[str]) -> Identity:
        """Create an identity and return the stored record."""

    @abstractmethod
    async def update_password(self, email: str, password_hash: str) -> None:
        """Replace the password hash of an existing identity."""


@dataclass
class PendingRegistration:
    """Registration details held while the OTP is outstanding."""
    email: str
    name: str
    password_hash: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(
            {"email": self.email, "name": self.name, "password_hash": self.password_hash},
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, raw: str) -> "PendingRegistration":
        data = json.loads(raw)
        return cls(email=data["email"], name=data["name"], password_hash=data.get("password_hash"))


class RegistrationFlow:
    """Two-step registration: request an OTP, then confirm it to create the identity."""

    def __init__(
        self,
        otp: OTPService,
        tokens: TokenIssuer,
        identities: IdentityStore,
        store: EphemeralStore,
    ):
        self.otp = otp
        self.tokens = tokens
        self.identities = identities
        self.store = store

    @surface_store_errors
    async def start(
        self,
        email: str,
        name: str,
        password: Optional[str] = None,
    ) -> Result[IssuedChallenge]:
        """
        Send a registration OTP and hold the registration details.

        Returns:
            IssuedChallenge, IDENTITY_EXISTS, or any issuance failure
        """
        email = normalize_identity(email)

        if await self.identities.find_by_email(email) is not None:
            return Result.fail(FailureKind.IDENTITY_EXISTS)

        issued = await self.otp.check_and_issue(email, Purpose.REGISTRATION, name)
        if not issued.ok and not issued.is_failure(FailureKind.DELIVERY_FAILED):
            return issued

        pending = PendingRegistration(
            email=email,
            name=name,
            password_hash=await hash_password(password) if password else None,
        )
        await self.store.set(
            OTPKeys.registration_data(email),
            pending.to_json(),
            PENDING_REGISTRATION_SECONDS,
        )
        return issued

    @surface_store_errors
    async def complete(self, email: str, otp: str) -> Result[SessionTokens]:
        """
        Confirm the OTP, create the identity and issue session tokens.

        Returns:
            SessionTokens, or LOCKED / EXPIRED / INVALID
        """
        email = normalize_identity(email)

        verified = await self.otp.verify(email, otp, Purpose.REGISTRATION)
        if not verified.ok:
            return verified

        key = OTPKeys.registration_data(email)
        raw = await self.store.get(key)
        if raw is None:
            logger.info("Registration data expired before confirmation", identity=mask_identity(email))
            return Result.fail(FailureKind.EXPIRED, message="Registration session expired. Please register again.")

        pending = PendingRegistration.from_json(raw)
        identity = await self.identities.create(pending.email, pending.name, pending.password_hash)
        await self.store.delete(key)

        logger.info("Identity registered", identity=mask_identity(email), subject_id=identity.id)
        return self.tokens.issue_session_tokens(identity.id, identity.role)


class PasswordResetFlow:
    """Password reset: request an OTP for a known identity, then set a new password."""

    def __init__(self, otp: OTPService, identities: IdentityStore):
        self.otp = otp
        self.identities = identities

    async def start(self, email: str) -> Result[IssuedChallenge]:
        """
        Send a password-reset OTP.

        Returns:
            IssuedChallenge, IDENTITY_NOT_FOUND, or any issuance failure
        """
        email = normalize_identity(email)

        identity = await self.identities.find_by_email(email)
        if identity is None:
            return Result.fail(FailureKind.IDENTITY_NOT_FOUND)

        return await self.otp.check_and_issue(email, Purpose.PASSWORD_RESET, identity.name)

    async def complete(self, email: str, otp: str, new_password: str) -> Result[None]:
        """Confirm the OTP and store the new password."""
        if not new_password:
            raise ValueError("Password cannot be empty")
        email = normalize_identity(email)

        verified = await self.otp.verify(email, otp, Purpose.PASSWORD_RESET)
        if not verified.ok:
            return verified

        await self.identities.update_password(email, await hash_password(new_password))
        logger.info("Password reset", identity=mask_identity(email))
        return Result.success()


class LoginFlow:
    """Password login issuing session tokens."""

    def __init__(self, tokens: TokenIssuer, identities: IdentityStore):
        self.tokens = tokens
        self.identities = identities

    async def login(self, email: str, password: str) -> Result[SessionTokens]:
        email = normalize_identity(email)

        identity = await self.identities.find_by_email(email)
        if identity is None or not identity.password_hash:
            return Result.fail(FailureKind.INVALID_CREDENTIALS)

        if not await verify_password(password, identity.password_hash):
            logger.info("Login rejected", identity=mask_identity(email))
            return Result.fail(FailureKind.INVALID_CREDENTIALS)

        if needs_rehash(identity.password_hash):
            await self.identities.update_password(email, await hash_password(password))

        return self.tokens.issue_session_tokens(identity.id, identity.role)
