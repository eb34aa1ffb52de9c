"""
OTP Hashing Utilities
=====================
Code generation, salted hashing and timing-safe verification.

Only the salted hash of a code is ever written to the store; the clear code
goes to the deliverer and nowhere else.
"""

import secrets
import hashlib
import hmac


def generate_otp(length: int = 6) -> str:
    """
    Generate a secure random numeric OTP.

    Uniform over ``10 ** length`` values, zero-padded to ``length`` digits.

    Args:
        length: Number of digits

    Returns:
        OTP string
    """
    return str(secrets.randbelow(10 ** length)).zfill(length)


def generate_salt() -> str:
    """Generate a random salt for OTP hashing."""
    return secrets.token_hex(16)


def hash_otp(otp: str, salt: str) -> str:
    """
    Hash an OTP with salt using SHA-256.

    Args:
        otp: Plain OTP
        salt: Random salt

    Returns:
        Hex digest
    """
    return hashlib.sha256(f"{salt}:{otp}".encode()).hexdigest()


def verify_otp_hash(otp: str, salt: str, stored_hash: str) -> bool:
    """
    Verify an OTP against its stored hash.

    Digests are always the same length, so the comparison runs in constant
    time whatever the submitted value looks like.

    Args:
        otp: User-provided OTP
        salt: Salt stored with the challenge
        stored_hash: Stored hash to compare

    Returns:
        True if the OTP matches
    """
    computed_hash = hash_otp(otp, salt)
    return hmac.compare_digest(computed_hash, stored_hash)
