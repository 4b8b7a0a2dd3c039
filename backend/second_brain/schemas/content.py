"""
Content, search and reconciliation schemas.

Request models are intentionally lenient about whitespace; trimming and
tag normalization are the repository's job. Bounds checked here are the
ones FastAPI should reject with 422 before any store is touched.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from second_brain.models.content import ContentType


# ================================
# Requests
# ================================

class ContentCreate(BaseModel):
    """
    New content item.

    Example request:
        POST /api/v1/content
        {
            "title": "React hooks explained",
            "link": "https://example.com/hooks",
            "type": "Article",
            "tags": ["React", "frontend"],
            "description": "Short primer on useEffect"
        }
    """
    title: str = Field(..., min_length=1, max_length=255)
    link: str = Field(..., min_length=1, max_length=2048)
    type: ContentType
    tags: list[str] = Field(default_factory=list)
    description: str = Field(..., max_length=100)


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1, description="Natural-language search text")


# ================================
# Entity Responses
# ================================

class LinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    hash: str
    user_id: int


class TagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str


class ContentResponse(BaseModel):
    """A content item with its link and tags."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    type: ContentType
    description: str
    user_id: int
    link_id: int
    created_at: datetime
    link: LinkResponse
    tags: list[TagResponse]


# ================================
# Endpoint Responses
# ================================

class ContentCreateResponse(BaseModel):
    message: str = "Content created successfully"
    content: ContentResponse
    indexed: bool = Field(
        ...,
        description="False when the vector index could not be updated; reconciliation backfills it",
    )


class ContentListResponse(BaseModel):
    success: bool = True
    count: int
    data: list[ContentResponse]


class SearchResponse(BaseModel):
    success: bool = True
    query: str
    results: list[ContentResponse]


class ReindexResponse(BaseModel):
    """Counts from one reconciliation pass."""

    checked: int
    missing: int
    reindexed: int
    failed: int
    pruned: int


class ErrorBody(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    error: ErrorBody
