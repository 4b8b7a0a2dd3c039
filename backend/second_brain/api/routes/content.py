"""
Content and search endpoints.

Every route acts on behalf of the authenticated user; another user's
content is indistinguishable from missing content (404).

Domain errors raised by the pipeline are turned into responses by the
exception handlers registered in second_brain.main.
"""

from fastapi import APIRouter, status

from second_brain.api.deps import Pipeline
from second_brain.core.auth import CurrentUser
from second_brain.core.logging import get_logger
from second_brain.schemas.auth import MessageResponse
from second_brain.schemas.content import (
    ContentCreate,
    ContentCreateResponse,
    ContentListResponse,
    ContentResponse,
    ReindexResponse,
    SearchRequest,
    SearchResponse,
)

logger = get_logger(__name__)

router = APIRouter(tags=["content"])


# ================================
# Content
# ================================

@router.post(
    "/content",
    response_model=ContentCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_content(payload: ContentCreate, current_user: CurrentUser, pipeline: Pipeline):
    """
    Store a content item and index it for search.

    `indexed` is false when the item was stored but could not be embedded
    or written to the vector index; the reconciliation job picks it up.
    """
    outcome = await pipeline.create_content(current_user.id, payload)
    return ContentCreateResponse(
        message="Content created successfully",
        content=ContentResponse.model_validate(outcome.content),
        indexed=outcome.indexed,
    )


@router.get("/content", response_model=ContentListResponse)
async def list_content(current_user: CurrentUser, pipeline: Pipeline):
    """The caller's content, most recent first."""
    contents = await pipeline.list_content(current_user.id)
    return ContentListResponse(
        success=True,
        count=len(contents),
        data=[ContentResponse.model_validate(c) for c in contents],
    )


@router.delete("/content/{content_id}", response_model=MessageResponse)
async def delete_content(content_id: int, current_user: CurrentUser, pipeline: Pipeline):
    await pipeline.delete_content(current_user.id, content_id)
    return MessageResponse(message="Content deleted successfully")


@router.post("/content/reindex", response_model=ReindexResponse)
async def reindex_content(current_user: CurrentUser, pipeline: Pipeline):
    """Backfill vector points for the caller's content that is missing from the index."""
    report = await pipeline.reindex(user_id=current_user.id, prune=False)
    return ReindexResponse(**report.as_dict())


# ================================
# Search
# ================================

@router.post("/search", response_model=SearchResponse)
async def search(payload: SearchRequest, current_user: CurrentUser, pipeline: Pipeline):
    """Semantic search over the caller's content, best match first."""
    outcome = await pipeline.search(current_user.id, payload.query)
    return SearchResponse(
        success=True,
        query=outcome.query,
        results=[ContentResponse.model_validate(c) for c in outcome.results],
    )
