"""
JWT token generation and validation.

Issues access/refresh token pairs bound to a user id and verifies them
without raising for ordinary failures.
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

import jwt
from loguru import logger


ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE = timedelta(minutes=5)
REFRESH_TOKEN_EXPIRE = timedelta(days=7)

ACCESS = "access"
REFRESH = "refresh"

# Registered claims are stripped from the principal claims handed back
_REGISTERED_CLAIMS = {"iat", "exp", "nbf", "sub", "jti", "type"}


class VerifyFailure(str, Enum):
    """Reason a token failed verification."""
    EXPIRED = "expired"
    MALFORMED = "malformed"
    SIGNATURE_INVALID = "signature-invalid"


@dataclass(frozen=True)
class TokenPair:
    """Access and refresh tokens minted from the same claims."""
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class VerifyResult:
    """
    Outcome of token verification.

    Attributes:
        valid: Whether signature, expiry and token type checked out
        claims: Principal claims (e.g. ``{"user_id": ...}``) when valid
        reason: Failure reason when not valid
    """
    valid: bool
    claims: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[VerifyFailure] = None

    @property
    def user_id(self) -> Optional[str]:
        return self.claims.get("user_id")


class JWTHandler:
    """
    JWT token handler.

    Pure functions over an explicitly supplied secret; holds no other state.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = ALGORITHM,
        access_ttl: timedelta = ACCESS_TOKEN_EXPIRE,
        refresh_ttl: timedelta = REFRESH_TOKEN_EXPIRE,
    ):
        """
        Initialize handler.

        Args:
            secret_key: Secret key for signing tokens
            algorithm: JWT algorithm (default: HS256)
            access_ttl: Access token validity window
            refresh_ttl: Refresh token validity window
        """
        if not secret_key:
            raise ValueError("secret_key must not be empty")

        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def issue(self, claims: Dict[str, Any]) -> TokenPair:
        """
        Create an access/refresh token pair.

        Args:
            claims: Principal claims, minimally ``{"user_id": ...}``

        Returns:
            TokenPair with both signed tokens
        """
        if not claims.get("user_id"):
            raise ValueError("claims must contain user_id")

        pair = TokenPair(
            access_token=self._encode(claims, ACCESS, self.access_ttl),
            refresh_token=self._encode(claims, REFRESH, self.refresh_ttl),
        )
        logger.debug(f"Token pair issued for user {claims['user_id']}")
        return pair

    def verify(self, token: str, token_type: str = ACCESS) -> VerifyResult:
        """
        Verify and decode a token.

        Args:
            token: JWT token string
            token_type: Expected token type ("access" or "refresh")

        Returns:
            VerifyResult; never raises for invalid tokens
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Token has expired")
            return VerifyResult(valid=False, reason=VerifyFailure.EXPIRED)
        except jwt.InvalidSignatureError:
            logger.warning("Token signature verification failed")
            return VerifyResult(valid=False, reason=VerifyFailure.SIGNATURE_INVALID)
        except jwt.InvalidTokenError as e:
            logger.debug(f"Malformed token: {e}")
            return VerifyResult(valid=False, reason=VerifyFailure.MALFORMED)

        if payload.get("type") != token_type:
            logger.warning(f"Expected {token_type} token, got {payload.get('type')!r}")
            return VerifyResult(valid=False, reason=VerifyFailure.MALFORMED)

        claims = {k: v for k, v in payload.items() if k not in _REGISTERED_CLAIMS}
        if not claims.get("user_id"):
            return VerifyResult(valid=False, reason=VerifyFailure.MALFORMED)

        return VerifyResult(valid=True, claims=claims)

    def _encode(self, claims: Dict[str, Any], token_type: str, ttl: timedelta) -> str:
        issued_at = int(datetime.now(timezone.utc).timestamp())
        payload = dict(claims)
        payload.update({
            "iat": issued_at,
            "exp": issued_at + int(ttl.total_seconds()),
            "sub": str(claims["user_id"]),
            "jti": secrets.token_urlsafe(16),
            "type": token_type,
        })
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
