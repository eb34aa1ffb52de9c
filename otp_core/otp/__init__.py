"""
OTP Issuance and Verification
=============================
Secure OTP challenges with throttling and brute-force lockout.
"""

from .models import Purpose, OTPChallenge, IssuedChallenge
from .hashing import generate_otp, generate_salt, hash_otp, verify_otp_hash
from .service import OTPService

__all__ = [
    # Models
    "Purpose",
    "OTPChallenge",
    "IssuedChallenge",
    # Codes
    "generate_otp",
    "generate_salt",
    "hash_otp",
    "verify_otp_hash",
    # Service
    "OTPService",
]
