"""Pydantic schemas for request/response validation."""

from second_brain.schemas.auth import (
    MessageResponse,
    SigninRequest,
    SigninResponse,
    SignupRequest,
    UserResponse,
)
from second_brain.schemas.content import (
    ContentCreate,
    ContentCreateResponse,
    ContentListResponse,
    ContentResponse,
    ErrorResponse,
    LinkResponse,
    ReindexResponse,
    SearchRequest,
    SearchResponse,
    TagResponse,
)

__all__ = [
    # Auth
    "SignupRequest",
    "SigninRequest",
    "SigninResponse",
    "MessageResponse",
    "UserResponse",
    # Content
    "ContentCreate",
    "ContentResponse",
    "ContentCreateResponse",
    "ContentListResponse",
    "LinkResponse",
    "TagResponse",
    # Search
    "SearchRequest",
    "SearchResponse",
    # Reconciliation
    "ReindexResponse",
    # Errors
    "ErrorResponse",
]
