"""
Security utilities for authentication.

This module provides:
- Password hashing and verification (bcrypt)
- JWT token creation and validation (python-jose)

The indexing pipeline never sees passwords or tokens; it receives an
already-verified integer user id from ``second_brain.core.auth``.

References:
-----------
- FastAPI Security: https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/
- JWT Standard: https://jwt.io/introduction
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from second_brain.core.config import settings

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


# ================================
# Password Hashing
# ================================

def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a bcrypt hash.

    Args:
        plain_password: The password the user entered
        hashed_password: The hash stored on the User row

    Returns:
        True if the password matches, False otherwise

    Example:
        >>> hashed = get_password_hash("secret")
        >>> verify_password("secret", hashed)
        True
    """
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a valid bcrypt hash
        return False


def get_password_hash(password: str) -> str:
    """
    Hash a plaintext password with a fresh random salt.

    Each call produces a different hash for the same password;
    verify_password handles the salt extraction.
    """
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt())
    return hashed.decode("utf-8")


# ================================
# JWT Tokens
# ================================

def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to include. Must contain "sub" (the user id as a string).
        expires_delta: Lifetime of the token.
                       Defaults to ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token({"sub": "42"})
        >>> decode_access_token(token)["sub"]
        '42'
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire, "iat": datetime.now(timezone.utc)})

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Decode and verify a JWT access token.

    Returns:
        Dictionary of claims if the token is valid, None if it is expired,
        tampered with or malformed.
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
