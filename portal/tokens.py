"""
Access/refresh token lifecycle.

Access tokens are HS256 JWTs that embed the user's role. The role is not
re-read from the database on each request: a role change takes effect at the
next refresh or when the current access token expires (at most
``access_ttl``). This keeps the authentication path free of database
round-trips.

Rotating the signing secret invalidates every outstanding access token at
once; there is no grace period with two active secrets.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional, Union

from jose import JWTError, jwt
from pydantic import BaseModel

from .clock import Clock, from_timestamp, to_timestamp, utcnow
from .config import (
    JWT_ACCESS_EXPIRY_MINUTES,
    JWT_AUDIENCE,
    JWT_ISSUER,
    JWT_MIN_SECRET_LENGTH,
    JWT_REFRESH_EXPIRY_HOURS,
    JWT_SECRET,
    is_production,
)
from .errors import SigningKeyError, TokenExpired, TokenInvalid, TokenRevoked
from .security import generate_secure_token

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ("sub", "role", "iat", "exp", "jti")


class TokenClaims(BaseModel):
    sub: str
    role: str
    email: Optional[str] = None
    iss: str
    aud: Union[str, list[str]]
    iat: int
    nbf: Optional[int] = None
    exp: int
    jti: str

    @property
    def user_id(self) -> str:
        return self.sub

    @property
    def token_id(self) -> str:
        return self.jti

    @property
    def expires_at(self) -> datetime:
        return from_timestamp(self.exp)

    @property
    def issued_at(self) -> datetime:
        return from_timestamp(self.iat)


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_expires_at: datetime


class TokenService:
    """Issues, validates and revokes bearer credentials"""

    def __init__(
        self,
        secret: Optional[str],
        revocation_list,
        issuer: str = JWT_ISSUER,
        audience: str = JWT_AUDIENCE,
        access_ttl: timedelta = timedelta(minutes=JWT_ACCESS_EXPIRY_MINUTES),
        refresh_ttl: timedelta = timedelta(hours=JWT_REFRESH_EXPIRY_HOURS),
        clock: Optional[Clock] = None,
        min_secret_length: int = 0,
    ):
        if not secret:
            raise SigningKeyError("JWT signing secret is not configured")
        if len(secret.encode()) < min_secret_length:
            raise SigningKeyError(
                f"JWT signing secret must be at least {min_secret_length} bytes"
            )
        if access_ttl <= timedelta(0) or refresh_ttl <= timedelta(0):
            raise SigningKeyError("Token lifetimes must be positive")

        self._secret = secret
        self._issuer = issuer
        self._audience = audience
        self._revocation_list = revocation_list
        self._clock = clock or utcnow
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

        # Fail at startup if the key cannot sign
        try:
            jwt.encode({"probe": True}, self._secret, algorithm=ALGORITHM)
        except JWTError as e:
            raise SigningKeyError(f"JWT signing secret is unusable: {e}") from e

    # ------------------------------------------------------------------
    # Issuing
    # ------------------------------------------------------------------

    def issue_access_token(self, user_id: str, role: str, email: Optional[str] = None) -> str:
        now = self._clock()
        issued_at = to_timestamp(now)
        claims = {
            "sub": str(user_id),
            "role": role,
            "iss": self._issuer,
            "aud": self._audience,
            "iat": issued_at,
            "nbf": issued_at,
            "exp": issued_at + int(self.access_ttl.total_seconds()),
            "jti": str(uuid.uuid4()),
        }
        if email:
            claims["email"] = email
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def issue_refresh_token(self) -> str:
        """256 random bits, hex-encoded. The caller persists the user mapping and expiry."""
        return generate_secure_token(32)

    def refresh_token_expiry(self) -> datetime:
        return self._clock() + self.refresh_ttl

    def issue_token_pair(
        self,
        user_id: str,
        role: str,
        email: Optional[str] = None,
        refresh_expires_at: Optional[datetime] = None,
    ) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(user_id, role, email),
            refresh_token=self.issue_refresh_token(),
            expires_in=int(self.access_ttl.total_seconds()),
            refresh_expires_at=refresh_expires_at or self.refresh_token_expiry(),
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _decode(self, token: str) -> dict:
        """Verify signature, algorithm, issuer and audience. Time checks are done separately."""
        if not token or not isinstance(token, str):
            raise TokenInvalid()
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
                options={
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                    "require_aud": True,
                    "require_iss": True,
                },
            )
        except JWTError as e:
            logger.debug(f"Token rejected: {e}")
            raise TokenInvalid() from e

        missing = [claim for claim in REQUIRED_CLAIMS if claim not in payload]
        if missing:
            logger.debug(f"Token missing claims: {missing}")
            raise TokenInvalid()
        return payload

    def _to_claims(self, payload: dict) -> TokenClaims:
        try:
            return TokenClaims(**payload)
        except ValueError as e:
            raise TokenInvalid() from e

    def validate_access_token(self, token: str) -> TokenClaims:
        """Verify signature and standard fields. Does not consult the revocation list."""
        claims = self._to_claims(self._decode(token))

        now = to_timestamp(self._clock())
        if now >= claims.exp:
            raise TokenExpired()
        if claims.nbf is not None and now < claims.nbf:
            raise TokenInvalid("Token is not valid yet")
        return claims

    def validate_with_revocation(self, token: str) -> TokenClaims:
        claims = self.validate_access_token(token)
        if self._revocation_list.is_revoked(claims.jti):
            logger.info(f"🚫 Revoked token presented for user {claims.sub}")
            raise TokenRevoked()
        return claims

    # ------------------------------------------------------------------
    # Revocation
    # ------------------------------------------------------------------

    def revoke(self, token: str) -> TokenClaims:
        """
        Add the token's id to the revocation list until its own expiry.
        The signature must verify; expiry is not checked, so an already
        expired token is accepted (and is a no-op in practice).
        """
        claims = self._to_claims(self._decode(token))
        self._revocation_list.add(claims.jti, claims.expires_at)
        logger.info(f"🔒 Access token {claims.jti} revoked for user {claims.sub}")
        return claims

    def cleanup(self) -> int:
        return self._revocation_list.cleanup()


def build_token_service(revocation_list, clock: Optional[Clock] = None) -> TokenService:
    """Construct the process-wide token service from configuration"""
    return TokenService(
        secret=JWT_SECRET,
        revocation_list=revocation_list,
        clock=clock,
        min_secret_length=JWT_MIN_SECRET_LENGTH if is_production() else 0,
    )
