"""Business logic services."""

from second_brain.services.content_repository import ContentRepository, normalize_tag_titles
from second_brain.services.embedder import EmbeddingService, render_content_text
from second_brain.services.indexing_pipeline import (
    CreateOutcome,
    IndexingPipeline,
    ReindexReport,
    SearchOutcome,
)
from second_brain.services.vector_index import IndexResult, VectorIndexService, VectorMatch

__all__ = [
    "ContentRepository",
    "normalize_tag_titles",
    "EmbeddingService",
    "render_content_text",
    "VectorIndexService",
    "VectorMatch",
    "IndexResult",
    "IndexingPipeline",
    "CreateOutcome",
    "SearchOutcome",
    "ReindexReport",
]
