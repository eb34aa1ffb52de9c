"""
OTP Core Library
================
One-time-passcode issuance and verification, abuse throttling and session
token issuance over a shared Redis store.
"""

__version__ = "0.1.0"

# Configuration
from otp_core.config import (
    StoreConfig,
    ThrottleConfig,
    OTPConfig,
    TokenConfig,
    EmailConfig,
    parse_duration,
)

# Results and errors
from otp_core.results import (
    FailureKind,
    Result,
    surface_store_errors,
)
from otp_core.errors import (
    OTPCoreError,
    StoreUnavailableError,
    DeliveryError,
)

# Keys
from otp_core.keys import (
    KeyKind,
    OTPKeys,
    build_key,
    normalize_identity,
    mask_identity,
)

# Store
from otp_core.store import (
    EphemeralStore,
    InMemoryStore,
    RedisStore,
)

# Throttle
from otp_core.throttle import ThrottleEngine

# OTP
from otp_core.otp import (
    Purpose,
    OTPChallenge,
    IssuedChallenge,
    OTPService,
    generate_otp,
    hash_otp,
    verify_otp_hash,
)

# Delivery
from otp_core.delivery import (
    Deliverer,
    DeliveryPayload,
    HttpEmailDeliverer,
    LoggingDeliverer,
)

# Tokens
from otp_core.tokens import (
    TokenIssuer,
    SessionTokens,
    TokenClaims,
)

# Flows
from otp_core.flows import (
    Identity,
    IdentityStore,
    RegistrationFlow,
    PasswordResetFlow,
    LoginFlow,
)

# Retry
from otp_core.retry import with_store_retry

__all__ = [
    # Configuration
    "StoreConfig",
    "ThrottleConfig",
    "OTPConfig",
    "TokenConfig",
    "EmailConfig",
    "parse_duration",
    # Results and errors
    "FailureKind",
    "Result",
    "surface_store_errors",
    "OTPCoreError",
    "StoreUnavailableError",
    "DeliveryError",
    # Keys
    "KeyKind",
    "OTPKeys",
    "build_key",
    "normalize_identity",
    "mask_identity",
    # Store
    "EphemeralStore",
    "InMemoryStore",
    "RedisStore",
    # Throttle
    "ThrottleEngine",
    # OTP
    "Purpose",
    "OTPChallenge",
    "IssuedChallenge",
    "OTPService",
    "generate_otp",
    "hash_otp",
    "verify_otp_hash",
    # Delivery
    "Deliverer",
    "DeliveryPayload",
    "HttpEmailDeliverer",
    "LoggingDeliverer",
    # Tokens
    "TokenIssuer",
    "SessionTokens",
    "TokenClaims",
    # Flows
    "Identity",
    "IdentityStore",
    "RegistrationFlow",
    "PasswordResetFlow",
    "LoginFlow",
    # Retry
    "with_store_retry",
]
