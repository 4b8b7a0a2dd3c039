"""
Authentication schemas (Pydantic models for request/response).

References:
-----------
- Pydantic: https://docs.pydantic.dev/latest/
- FastAPI Request Body: https://fastapi.tiangolo.com/tutorial/body/
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# ================================
# Requests
# ================================

class SignupRequest(BaseModel):
    """
    Account creation request.

    Example request:
        POST /api/v1/auth/signup
        {
            "username": "alice@example.com",
            "password": "secret"
        }
    """
    username: EmailStr = Field(..., description="E-mail address used as login name")
    password: str = Field(..., min_length=3, description="Plaintext password (hashed before storage)")


class SigninRequest(SignupRequest):
    """Signin request; same shape as signup."""


# ================================
# Responses
# ================================

class MessageResponse(BaseModel):
    message: str


class UserResponse(BaseModel):
    """Public view of a user; never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str


class SigninResponse(BaseModel):
    """
    Successful signin.

    Client should send in future requests:
        Authorization: Bearer <token>
    """
    message: str = "Signed in successfully"
    token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type (always 'bearer' for JWT)")
    user: UserResponse
