"""
Security utilities for the UserHub API.
Token codec (JWT signing / verification) and password handling.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Literal
import uuid
import secrets

import jwt
import bcrypt

from userhub.config import settings
from userhub.core.exceptions import ConfigurationError


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt.checkpw(
        plain_password.encode('utf-8'),
        hashed_password.encode('utf-8')
    )


def hash_password(password: str) -> str:
    """Hash a password."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


# Token types
TokenType = Literal["access", "refresh"]

ACCESS_TOKEN_TTL = timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS)
REFRESH_TOKEN_TTL = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)


class InvalidTokenError(Exception):
    """Token signature, structure or type is not acceptable."""


class TokenExpiredError(InvalidTokenError):
    """Token was well-formed and signed but its exp claim has passed."""


def _require_secret() -> str:
    if not settings.JWT_SECRET:
        raise ConfigurationError("JWT_SECRET is not defined")
    return settings.JWT_SECRET


def sign_token(
    payload: dict,
    ttl: timedelta,
    token_type: TokenType = "access"
) -> str:
    """
    Create a signed JWT.

    Args:
        payload: Identity claims ({"id": ..., "email": ...})
        ttl: Lifetime of the token
        token_type: 'access' or 'refresh'

    Returns:
        Encoded JWT string
    """
    secret = _require_secret()
    now = datetime.now(timezone.utc)

    to_encode = {"id": payload["id"], "email": payload["email"]}
    to_encode.update({
        "iat": now,
        "exp": now + ttl,
        "type": token_type,
        "jti": str(uuid.uuid4())  # Keeps tokens minted in the same second distinct
    })

    return jwt.encode(to_encode, secret, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user_id: str, email: str) -> str:
    """Create an access token."""
    return sign_token({"id": user_id, "email": email}, ACCESS_TOKEN_TTL, "access")


def create_refresh_token(user_id: str, email: str) -> str:
    """Create a refresh token."""
    return sign_token({"id": user_id, "email": email}, REFRESH_TOKEN_TTL, "refresh")


def verify_token(token: str, token_type: Optional[TokenType] = None) -> dict:
    """
    Decode and validate a JWT.

    Raises:
        ConfigurationError: no signing secret configured
        TokenExpiredError: the exp claim has passed
        InvalidTokenError: bad signature, malformed token or wrong type
    """
    secret = _require_secret()
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpiredError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError("Token is invalid") from exc

    if not payload.get("id") or not payload.get("email"):
        raise InvalidTokenError("Token is missing identity claims")
    if token_type and payload.get("type") != token_type:
        raise InvalidTokenError(f"Expected a {token_type} token")
    return payload


def generate_secure_token(length: int = 32) -> str:
    """Generate a secure random token for password reset and email verification."""
    return secrets.token_hex(length)
