"""
Session Tokens
==============
Signed access and refresh tokens for confirmed identities.

Access and refresh tokens are signed with independent secrets, so a leaked
access secret cannot mint refresh tokens.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
import structlog
from jose import ExpiredSignatureError, JWTError, jwt

from .config import TokenConfig
from .results import FailureKind, Result

logger = structlog.get_logger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass
class SessionTokens:
    """An access/refresh token pair."""
    access_token: str
    refresh_token: str
    access_expires_at: int  # Unix timestamp
    refresh_expires_at: int  # Unix timestamp
    token_type: str = "bearer"


@dataclass
class TokenClaims:
    """Verified claims of a session token."""
    subject_id: str
    role: str
    token_type: str
    issued_at: int
    expires_at: int


class TokenIssuer:
    """Issues and verifies session tokens."""

    def __init__(
        self,
        config: Optional[TokenConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or TokenConfig()
        self._clock = clock

    def _claims(self, subject_id: str, role: str, token_type: str, issued_at: int, ttl: int) -> Dict[str, Any]:
        claims: Dict[str, Any] = {
            "sub": subject_id,
            "role": role,
            "type": token_type,
            "iat": issued_at,
            "exp": issued_at + ttl,
        }
        if self.config.issuer:
            claims["iss"] = self.config.issuer
        return claims

    def issue_session_tokens(self, subject_id: str, role: str) -> Result[SessionTokens]:
        """
        Sign an access/refresh pair binding ``subject_id`` and ``role``.

        Args:
            subject_id: Identity record ID
            role: Role claim, e.g. "buyer" or "seller"

        Returns:
            Result with SessionTokens
        """
        if not subject_id or not role:
            raise ValueError("subject_id and role are required")

        now = int(self._clock())
        access_claims = self._claims(subject_id, role, ACCESS_TOKEN_TYPE, now, self.config.access_ttl_seconds)
        refresh_claims = self._claims(subject_id, role, REFRESH_TOKEN_TYPE, now, self.config.refresh_ttl_seconds)

        tokens = SessionTokens(
            access_token=jwt.encode(access_claims, self.config.access_secret, algorithm=self.config.algorithm),
            refresh_token=jwt.encode(refresh_claims, self.config.refresh_secret, algorithm=self.config.algorithm),
            access_expires_at=access_claims["exp"],
            refresh_expires_at=refresh_claims["exp"],
        )
        logger.info("Session tokens issued", subject_id=subject_id, role=role)
        return Result.success(tokens)

    def _decode(self, token: str, secret: str, expected_type: str) -> Optional[TokenClaims]:
        options = {"require_exp": True, "require_iat": True, "require_sub": True}
        kwargs: Dict[str, Any] = {"algorithms": [self.config.algorithm], "options": options}
        if self.config.issuer:
            kwargs["issuer"] = self.config.issuer
        try:
            payload = jwt.decode(token, secret, **kwargs)
        except ExpiredSignatureError:
            logger.info("Rejected expired token", token_type=expected_type)
            return None
        except JWTError as e:
            logger.warning("Rejected invalid token", token_type=expected_type, error=str(e))
            return None

        if payload.get("type") != expected_type or not payload.get("role"):
            logger.warning("Rejected token with wrong claims", token_type=expected_type)
            return None

        return TokenClaims(
            subject_id=str(payload["sub"]),
            role=str(payload["role"]),
            token_type=payload["type"],
            issued_at=int(payload["iat"]),
            expires_at=int(payload["exp"]),
        )

    def decode_access_token(self, token: str) -> Optional[TokenClaims]:
        """Verify an access token. Expired or mis-signed tokens return None."""
        return self._decode(token, self.config.access_secret, ACCESS_TOKEN_TYPE)

    def decode_refresh_token(self, token: str) -> Optional[TokenClaims]:
        """Verify a refresh token. Expired or mis-signed tokens return None."""
        return self._decode(token, self.config.refresh_secret, REFRESH_TOKEN_TYPE)

    def refresh_session(self, refresh_token: str) -> Result[SessionTokens]:
        """Exchange a valid refresh token for a new token pair."""
        claims = self.decode_refresh_token(refresh_token)
        if claims is None:
            return Result.fail(FailureKind.INVALID_CREDENTIALS, message="Invalid or expired refresh token.")
        return self.issue_session_tokens(claims.subject_id, claims.role)
