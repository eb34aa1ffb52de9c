"""
OTP Models
==========
Data models and enums for OTP challenges.
"""

import json
from dataclasses import dataclass
from enum import Enum


class Purpose(str, Enum):
    """Flows an OTP can prove identity for."""
    REGISTRATION = "registration"
    PASSWORD_RESET = "password_reset"


@dataclass
class OTPChallenge:
    """A live challenge as stored: the salted code hash and the flow it was issued for."""
    otp_hash: str
    salt: str
    purpose: Purpose

    def to_json(self) -> str:
        return json.dumps(
            {"otp_hash": self.otp_hash, "salt": self.salt, "purpose": self.purpose.value},
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, raw: str) -> "OTPChallenge":
        data = json.loads(raw)
        return cls(
            otp_hash=str(data["otp_hash"]),
            salt=str(data["salt"]),
            purpose=Purpose(data["purpose"]),
        )


@dataclass
class IssuedChallenge:
    """Returned to callers on issuance. Never carries the code itself."""
    identity: str
    purpose: Purpose
    expires_in: int  # Seconds
    delivered: bool = True
