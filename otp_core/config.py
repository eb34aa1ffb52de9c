"""
OTP Core Configuration
======================
Configuration dataclasses, defaulted from environment variables.
"""

import os
import re
from dataclasses import dataclass, field
from typing import Optional

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> int:
    """
    Parse a duration such as ``3600``, ``15m``, ``1h`` or ``7d`` into seconds.

    Raises:
        ValueError: If the value is not a positive duration
    """
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    seconds = int(amount) * _DURATION_UNITS[unit]
    if seconds <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return seconds


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


def _is_production() -> bool:
    env = os.environ.get("ENVIRONMENT") or os.environ.get("NODE_ENV") or "development"
    return env.strip().lower() == "production"


@dataclass
class StoreConfig:
    """Connection settings for the shared Redis store."""
    url: Optional[str] = os.environ.get("REDIS_URL")
    host: str = re.sub(r"^https?://", "", os.environ.get("REDIS_HOST", "127.0.0.1"))
    port: int = int(os.environ.get("REDIS_PORT", "6379"))
    password: Optional[str] = os.environ.get("REDIS_PASSWORD") or None
    db: int = int(os.environ.get("REDIS_DB", "0"))
    tls: bool = _env_flag("REDIS_TLS") or "upstash.io" in os.environ.get("REDIS_HOST", "")
    socket_timeout: float = 2.0
    socket_connect_timeout: float = 2.0
    max_connections: int = 20
    health_check_interval: int = 15


@dataclass
class ThrottleConfig:
    """Abuse-prevention thresholds and windows."""
    max_requests: int = 3  # Issuance requests allowed per window
    request_window_seconds: int = 3600
    spam_lock_seconds: int = 3600
    cooldown_seconds: int = 60
    max_failed_attempts: int = 3
    failed_window_seconds: int = 3600
    lock_seconds: int = 3600
    # Whether a failed verification also counts against the issuance window
    count_failures_toward_issuance: bool = _env_flag("OTP_COUNT_FAILURES_TOWARD_ISSUANCE")

    def __post_init__(self):
        for name in (
            "max_requests",
            "request_window_seconds",
            "spam_lock_seconds",
            "cooldown_seconds",
            "max_failed_attempts",
            "failed_window_seconds",
            "lock_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")


@dataclass
class OTPConfig:
    """Configuration for OTP challenges."""
    length: int = 6
    expiry_seconds: int = 300  # 5 minutes
    log_codes: bool = field(default_factory=lambda: not _is_production())

    def __post_init__(self):
        if not 4 <= self.length <= 10:
            raise ValueError("OTP length must be between 4 and 10 digits")
        if self.expiry_seconds <= 0:
            raise ValueError("expiry_seconds must be positive")


@dataclass
class TokenConfig:
    """Signing secrets and lifetimes for session tokens."""
    access_secret: str = os.environ.get("JWT_SECRET", "")
    refresh_secret: str = os.environ.get("JWT_REFRESH_SECRET", "")
    access_ttl_seconds: int = parse_duration(os.environ.get("JWT_EXPIRES_IN", "1h"))
    refresh_ttl_seconds: int = parse_duration(os.environ.get("JWT_REFRESH_EXPIRES_IN", "7d"))
    algorithm: str = "HS256"
    issuer: Optional[str] = os.environ.get("JWT_ISSUER") or None

    def __post_init__(self):
        if not self.access_secret or not self.refresh_secret:
            raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must both be set")
        if self.access_secret == self.refresh_secret:
            raise ValueError("Access and refresh tokens must use different secrets")
        if self.access_ttl_seconds >= self.refresh_ttl_seconds:
            raise ValueError("Access token lifetime must be shorter than refresh lifetime")


@dataclass
class EmailConfig:
    """Transactional email API settings for OTP delivery."""
    api_url: str = os.environ.get("EMAIL_API_URL", "http://localhost:8025/api/send")
    api_key: str = os.environ.get("EMAIL_API_KEY", "")
    sender: str = os.environ.get("EMAIL_SENDER", "Support <no-reply@localhost>")
    timeout: float = 10.0
