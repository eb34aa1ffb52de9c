"""
Password Hashing
================
Async-safe password hashing with Argon2id for the registration, reset and
login flows.

Hashes from the legacy store are bcrypt (``$2a$``/``$2b$``/``$2y$``); they
still verify, and ``needs_rehash`` flags them for upgrade on next login.
"""

import asyncio
from functools import lru_cache

import bcrypt
from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


@lru_cache(maxsize=1)
def _get_hasher() -> PasswordHasher:
    return PasswordHasher(
        time_cost=3,
        memory_cost=65536,  # 64MB
        parallelism=4,
        hash_len=32,
        salt_len=16,
        type=Type.ID,
    )


def _verify_argon2(password: str, hashed: str) -> bool:
    try:
        return _get_hasher().verify(hashed, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def _verify_bcrypt(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


async def hash_password(password: str) -> str:
    """
    Hash a password with Argon2id in a worker thread.

    Raises:
        ValueError: If the password is empty
    """
    if not password:
        raise ValueError("Password cannot be empty")
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _get_hasher().hash, password)


async def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against an Argon2id or legacy bcrypt hash."""
    if not password or not hashed:
        return False

    if hashed.startswith("$argon2"):
        verify = _verify_argon2
    elif hashed.startswith(BCRYPT_PREFIXES):
        verify = _verify_bcrypt
    else:
        return False

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, verify, password, hashed)


def needs_rehash(hashed: str) -> bool:
    """True for bcrypt hashes and Argon2 hashes with outdated parameters."""
    if not hashed or hashed.startswith(BCRYPT_PREFIXES):
        return True
    try:
        return _get_hasher().check_needs_rehash(hashed)
    except InvalidHashError:
        return True
