"""
Authentication endpoints.

This module provides:
- Signup (username + password)
- Signin (returns a JWT bearer token)

References:
-----------
- FastAPI Security: https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/
"""

from datetime import timedelta

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from second_brain.core.auth import authenticate_user
from second_brain.core.config import settings
from second_brain.core.logging import get_logger
from second_brain.core.security import create_access_token, get_password_hash
from second_brain.db.deps import DBSession
from second_brain.models.user import User
from second_brain.schemas.auth import (
    MessageResponse,
    SigninRequest,
    SigninResponse,
    SignupRequest,
    UserResponse,
)

# Setup logger
logger = get_logger(__name__)

# Create router
router = APIRouter(prefix="/auth", tags=["authentication"])


# ================================
# Signup
# ================================

@router.post("/signup", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def signup(payload: SignupRequest, db: DBSession):
    """
    Create an account.

    Raises:
        HTTPException 409: Username already taken
        HTTPException 422: Invalid e-mail or password too short (Pydantic)
    """
    result = await db.execute(select(User).where(User.username == payload.username))
    if result.scalar_one_or_none() is not None:
        logger.warning("signup_username_taken", username=payload.username)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already taken",
        )

    user = User(
        username=payload.username,
        hashed_password=get_password_hash(payload.password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same username
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already taken",
        )

    logger.info("user_signed_up", user_id=user.id)
    return MessageResponse(message="User signed up successfully")


# ================================
# Signin
# ================================

@router.post("/signin", response_model=SigninResponse)
async def signin(payload: SigninRequest, db: DBSession):
    """
    Exchange username and password for a bearer token.

    Client should then send:
    ------------------------
    Authorization: Bearer <token>

    Raises:
        HTTPException 401: Unknown username or wrong password
    """
    user = await authenticate_user(db, payload.username, payload.password)
    if user is None:
        logger.warning("signin_failed", username=payload.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = create_access_token(
        data={"sub": str(user.id)},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )

    logger.info("user_signed_in", user_id=user.id)
    return SigninResponse(
        message="Signed in successfully",
        token=token,
        token_type="bearer",
        user=UserResponse.model_validate(user),
    )
