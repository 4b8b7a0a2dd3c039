"""
Resolving the caller of a request.

Signin checks a username/password pair; every content route then takes
``CurrentUser``, which turns the bearer token back into a User row. The
services below the routes only ever receive ``user.id``.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from second_brain.core.logging import get_logger
from second_brain.core.security import decode_access_token, verify_password
from second_brain.db.deps import get_db
from second_brain.models.user import User

logger = get_logger(__name__)

# Extracts "Authorization: Bearer <token>" and points Swagger at the signin endpoint
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/signin")


async def authenticate_user(db: AsyncSession, username: str, password: str) -> User | None:
    """
    Authenticate a user by username and password.

    Returns:
        User object if the credentials match, None otherwise. The caller
        cannot tell an unknown username from a wrong password.
    """
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()

    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get the current authenticated user from the JWT token.

    The token's "sub" claim holds the user id. Anything that does not
    resolve to an existing user is a 401.

    Raises:
        HTTPException 401: Token invalid, expired, or user not found
    """
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_access_token(token)
    if payload is None:
        raise unauthorized

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        logger.warning("token_subject_invalid")
        raise unauthorized

    user = await db.get(User, user_id)
    if user is None:
        logger.warning("token_user_not_found", user_id=user_id)
        raise unauthorized

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
