"""Password hashing, refresh-token generation, and access-token signing/verification."""

import logging
import secrets
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any

import bcrypt
import jwt

from app.core.config import get_settings
from app.core.errors import InvalidTokenError
from app.schemas.auth import AccessTokenClaims, TokenSubject

logger = logging.getLogger(__name__)

# Min/max lengths for email and password validation (input validation).
EMAIL_MAX_LEN = 255
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

# 64 random bytes -> 128 hex chars; far above the 128-bit floor for opaque tokens.
REFRESH_TOKEN_BYTES = 64

# Claims every access token must carry.
REQUIRED_CLAIMS = ("sub", "email", "role", "iat", "exp")


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    cost = rounds if rounds is not None else get_settings().BCRYPT_ROUNDS
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


@lru_cache
def _dummy_hash() -> str:
    """Hash checked when the email is unknown, so both login failures cost one bcrypt run."""
    return hash_password("tessera-timing-equalizer")


def verify_password_or_dummy(plain_password: str, hashed: str | None) -> bool:
    """Verify against hashed, or burn the same bcrypt work and return False when there is no user."""
    if hashed is None:
        verify_password(plain_password, _dummy_hash())
        return False
    return verify_password(plain_password, hashed)


def generate_refresh_token() -> str:
    """Return a new opaque refresh token from the OS CSPRNG."""
    return secrets.token_hex(REFRESH_TOKEN_BYTES)


class TokenSigner:
    """
    Signs and verifies short-lived access tokens (JWT, HMAC).

    Verification is pure: it needs only the secret and the clock, never the database.
    """

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        if not secret:
            raise ValueError("secret must be non-empty")
        self._secret = secret
        self._algorithm = algorithm

    def sign(
        self,
        claims: TokenSubject,
        ttl: timedelta,
        issued_at: datetime | None = None,
    ) -> str:
        """Create a signed token for claims, valid from issued_at (default: now) for ttl."""
        # JWT timestamps are whole seconds; drop microseconds so verify() returns what was signed.
        now = (issued_at or datetime.now(UTC)).replace(microsecond=0)
        payload: dict[str, Any] = {
            "sub": str(claims.subject_id),
            "email": claims.email,
            "role": claims.role,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> AccessTokenClaims:
        """
        Decode and validate a token; return its claims.
        Raises InvalidTokenError on bad signature, malformed structure, missing claims, or expiry.
        """
        if not token:
            raise InvalidTokenError()
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": list(REQUIRED_CLAIMS)},
            )
        except jwt.PyJWTError as e:
            logger.debug("Access token rejected: %s", type(e).__name__)
            raise InvalidTokenError() from e

        try:
            return AccessTokenClaims(
                subject_id=int(payload["sub"]),
                email=payload["email"],
                role=payload["role"],
                issued_at=datetime.fromtimestamp(payload["iat"], UTC),
                expires_at=datetime.fromtimestamp(payload["exp"], UTC),
            )
        except (TypeError, ValueError) as e:
            raise InvalidTokenError() from e


@lru_cache
def get_token_signer() -> TokenSigner:
    """Return the process-wide signer built from settings (safe to call from dependencies)."""
    settings = get_settings()
    return TokenSigner(
        secret=settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )
