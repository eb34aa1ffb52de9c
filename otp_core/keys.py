"""
Store Keys
==========
Typed key construction for every entity the OTP core keeps in the store.
"""

from enum import Enum


class KeyKind(str, Enum):
    """Entity kinds kept in the shared store, one prefix each."""
    REQUEST_COUNT = "otp_request_count"
    SPAM_LOCK = "otp_spam_lock"
    COOLDOWN = "otp_cooldown"
    CHALLENGE = "otp"
    FAILED_ATTEMPTS = "otp_failed_attempts"
    ATTEMPT_LOCK = "otp_lock"
    REGISTRATION_DATA = "registration_data"


def normalize_identity(email: str) -> str:
    """Identity key for an email address: stripped and lower-cased."""
    return email.strip().lower()


def build_key(kind: KeyKind, identity: str) -> str:
    """
    Build the store key for an entity.

    Args:
        kind: Entity kind
        identity: Identity key (normalized email)

    Returns:
        Namespaced key, e.g. ``otp_lock:a@x.com``
    """
    if not identity:
        raise ValueError("identity must not be empty")
    return f"{kind.value}:{identity}"


class OTPKeys:
    """Key builders per entity kind."""

    @staticmethod
    def request_count(identity: str) -> str:
        return build_key(KeyKind.REQUEST_COUNT, identity)

    @staticmethod
    def spam_lock(identity: str) -> str:
        return build_key(KeyKind.SPAM_LOCK, identity)

    @staticmethod
    def cooldown(identity: str) -> str:
        return build_key(KeyKind.COOLDOWN, identity)

    @staticmethod
    def challenge(identity: str) -> str:
        return build_key(KeyKind.CHALLENGE, identity)

    @staticmethod
    def failed_attempts(identity: str) -> str:
        return build_key(KeyKind.FAILED_ATTEMPTS, identity)

    @staticmethod
    def attempt_lock(identity: str) -> str:
        return build_key(KeyKind.ATTEMPT_LOCK, identity)

    @staticmethod
    def registration_data(identity: str) -> str:
        return build_key(KeyKind.REGISTRATION_DATA, identity)


def mask_identity(identity: str) -> str:
    """
    Mask an email for logging.

    ``alice@example.com`` becomes ``a***@example.com``.
    """
    local, sep, domain = identity.partition("@")
    if not sep:
        return f"{identity[:1]}***"
    return f"{local[:1]}***@{domain}"
