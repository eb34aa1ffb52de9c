"""
Shared fixtures for OTP core tests.
"""

from typing import Dict, List, Optional, Tuple

import pytest

from otp_core.config import OTPConfig, ThrottleConfig, TokenConfig
from otp_core.delivery import Deliverer, DeliveryPayload
from otp_core.errors import DeliveryError
from otp_core.flows import Identity, IdentityStore
from otp_core.otp import OTPService, Purpose
from otp_core.store import InMemoryStore
from otp_core.throttle import ThrottleEngine
from otp_core.tokens import TokenIssuer


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingDeliverer(Deliverer):
    """Keeps every delivered payload; fails on demand."""

    name = "recording"

    def __init__(self):
        self.sent: List[Tuple[str, Purpose, DeliveryPayload]] = []
        self.fail = False

    async def deliver(self, recipient: str, purpose: Purpose, payload: DeliveryPayload) -> None:
        if self.fail:
            raise DeliveryError("SMTP down", recipient=recipient)
        self.sent.append((recipient, purpose, payload))

    @property
    def last_code(self) -> Optional[str]:
        return self.sent[-1][2].otp if self.sent else None


class MemoryIdentityStore(IdentityStore):
    """Dict-backed identity store."""

    def __init__(self):
        self.records: Dict[str, Identity] = {}

    async def find_by_email(self, email: str) -> Optional[Identity]:
        return self.records.get(email)

    async def create(self, email: str, name: str, password_hash: Optional[str]) -> Identity:
        identity = Identity(
            id=f"user-{len(self.records) + 1}",
            email=email,
            name=name,
            password_hash=password_hash,
        )
        self.records[email] = identity
        return identity

    async def update_password(self, email: str, password_hash: str) -> None:
        self.records[email].password_hash = password_hash


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryStore(clock=clock)


@pytest.fixture
def throttle_config():
    return ThrottleConfig(count_failures_toward_issuance=False)


@pytest.fixture
def throttle(store, throttle_config):
    return ThrottleEngine(store, throttle_config)


@pytest.fixture
def deliverer():
    return RecordingDeliverer()


@pytest.fixture
def otp_service(store, throttle, deliverer):
    return OTPService(store, throttle, deliverer, OTPConfig(length=6, expiry_seconds=300, log_codes=False))


@pytest.fixture
def token_config():
    return TokenConfig(
        access_secret="access-secret-for-tests",
        refresh_secret="refresh-secret-for-tests",
        access_ttl_seconds=3600,
        refresh_ttl_seconds=7 * 86400,
    )


@pytest.fixture
def token_issuer(token_config):
    return TokenIssuer(token_config)


@pytest.fixture
def identities():
    return MemoryIdentityStore()
