"""
API dependencies for the process-wide service handles.

The lifespan in ``second_brain.main`` boots one EmbeddingService and one
VectorIndexService and stores them on ``app.state``; routes receive them
through these dependencies (and tests override them the same way).
"""

from typing import Annotated

from fastapi import Depends, Request

from second_brain.db.deps import DBSession
from second_brain.services.embedder import EmbeddingService
from second_brain.services.indexing_pipeline import IndexingPipeline
from second_brain.services.vector_index import VectorIndexService


def get_embedder(request: Request) -> EmbeddingService:
    return request.app.state.embedder


def get_vector_index(request: Request) -> VectorIndexService:
    return request.app.state.vector_index


def get_indexing_pipeline(
    db: DBSession,
    embedder: Annotated[EmbeddingService, Depends(get_embedder)],
    vector_index: Annotated[VectorIndexService, Depends(get_vector_index)],
) -> IndexingPipeline:
    """A pipeline bound to this request's database session."""
    return IndexingPipeline(db, embedder, vector_index)


Pipeline = Annotated[IndexingPipeline, Depends(get_indexing_pipeline)]
