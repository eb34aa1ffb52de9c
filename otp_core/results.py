"""
Operation Results
=================
Tagged results returned by every fallible core operation.

Expected abuse-prevention outcomes (locks, cooldowns, wrong codes) are values,
not exceptions, so the transport layer can branch on ``failure`` without
inspecting message text.
"""

from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar
import structlog

from .errors import StoreUnavailableError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class FailureKind(str, Enum):
    """Named failure kinds surfaced to callers."""
    LOCKED = "locked"
    SPAM_LOCKED = "spam_locked"
    COOLING = "cooling"
    EXPIRED = "expired"
    INVALID = "invalid"
    DELIVERY_FAILED = "delivery_failed"
    STORE_UNAVAILABLE = "store_unavailable"
    IDENTITY_EXISTS = "identity_exists"
    IDENTITY_NOT_FOUND = "identity_not_found"
    INVALID_CREDENTIALS = "invalid_credentials"


DEFAULT_MESSAGES = {
    FailureKind.LOCKED: "Too many failed attempts. Please request a new OTP after some time.",
    FailureKind.SPAM_LOCKED: "Too many OTP requests. Please try again later.",
    FailureKind.COOLING: "Please wait 1 minute before requesting a new OTP.",
    FailureKind.EXPIRED: "OTP has expired or is invalid.",
    FailureKind.INVALID: "Invalid OTP provided.",
    FailureKind.DELIVERY_FAILED: "We could not deliver your OTP. Please try again shortly.",
    FailureKind.STORE_UNAVAILABLE: "Service temporarily unavailable. Please try again.",
    FailureKind.IDENTITY_EXISTS: "User with this email already exists.",
    FailureKind.IDENTITY_NOT_FOUND: "No account found for this email.",
    FailureKind.INVALID_CREDENTIALS: "Invalid email or password.",
}


@dataclass
class Result(Generic[T]):
    """Outcome of a core operation: ok with an optional value, or a named failure."""
    ok: bool
    value: Optional[T] = None
    failure: Optional[FailureKind] = None
    message: Optional[str] = None
    retry_after: Optional[int] = None  # Seconds until the condition lapses
    attempts_remaining: Optional[int] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def fail(
        cls,
        kind: FailureKind,
        message: Optional[str] = None,
        retry_after: Optional[int] = None,
        attempts_remaining: Optional[int] = None,
    ) -> "Result[T]":
        return cls(
            ok=False,
            failure=kind,
            message=message or DEFAULT_MESSAGES[kind],
            retry_after=retry_after,
            attempts_remaining=attempts_remaining,
        )

    @property
    def retryable(self) -> bool:
        """Only an unreachable store warrants caller-side retry."""
        return self.failure is FailureKind.STORE_UNAVAILABLE

    def is_failure(self, kind: FailureKind) -> bool:
        return self.failure is kind


def surface_store_errors(
    func: Callable[..., Awaitable[Result[Any]]],
) -> Callable[..., Awaitable[Result[Any]]]:
    """
    Convert ``StoreUnavailableError`` raised inside an operation into a
    ``STORE_UNAVAILABLE`` result.

    Usage:
        @surface_store_errors
        async def verify(self, identity, value, purpose):
            ...
    """
    @wraps(func)
    async def wrapper(*args, **kwargs) -> Result[Any]:
        try:
            return await func(*args, **kwargs)
        except StoreUnavailableError as e:
            logger.error(
                "Store unavailable",
                operation=func.__qualname__,
                error=str(e),
            )
            return Result.fail(FailureKind.STORE_UNAVAILABLE)
    return wrapper
