"""
Indexing Pipeline

Keeps the relational store and the vector index in step.

The relational store is the source of truth; the vector index holds one
derived point per Content (same id) and can always be rebuilt from it.

Call Ordering:
--------------
create:  repository write + commit → embed → upsert (acknowledged)
delete:  ownership check → delete point → delete row (+ orphaned Link)
search:  embed query → nearest neighbours → owner-filtered rows → rank

Failure Handling:
-----------------
- StoreError on create aborts; nothing is embedded
- EmbeddingError / VectorIndexError on create is logged; the content is
  reported with indexed=False and reindex() backfills it later
- VectorIndexError on search degrades to no results
- VectorIndexError on delete never blocks the relational delete
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from second_brain.core.config import settings
from second_brain.core.exceptions import EmbeddingError, NotFoundError, ValidationError
from second_brain.core.logging import get_logger
from second_brain.models.content import Content
from second_brain.schemas.content import ContentCreate
from second_brain.services.content_repository import ContentRepository
from second_brain.services.embedder import EmbeddingService
from second_brain.services.vector_index import VectorIndexService

logger = get_logger(__name__)


@dataclass
class CreateOutcome:
    content: Content
    indexed: bool


@dataclass
class SearchOutcome:
    query: str
    results: list[Content] = field(default_factory=list)


@dataclass
class ReindexReport:
    """Counts from one reconciliation pass."""

    checked: int = 0
    missing: int = 0
    reindexed: int = 0
    failed: int = 0
    pruned: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "checked": self.checked,
            "missing": self.missing,
            "reindexed": self.reindexed,
            "failed": self.failed,
            "pruned": self.pruned,
        }


class IndexingPipeline:
    """
    Orchestrates ContentRepository, EmbeddingService and VectorIndexService.

    One instance per request (it holds the request's AsyncSession); the
    embedder and the vector index are process-wide and shared.
    """

    def __init__(
        self,
        db: AsyncSession,
        embedder: EmbeddingService,
        vector_index: VectorIndexService,
    ):
        self.db = db
        self.repository = ContentRepository(db)
        self.embedder = embedder
        self.vector_index = vector_index

    # ================================
    # Create / List / Delete
    # ================================

    async def create_content(self, user_id: int, request: ContentCreate) -> CreateOutcome:
        """
        Store a new content item and index it.

        Raises:
            ValidationError: Rejected by the repository
            StoreError: Relational write failed (nothing was indexed)
        """
        content = await self.repository.create_content_with_link(
            user_id=user_id,
            title=request.title,
            content_type=request.type,
            description=request.description,
            link_hash=request.link,
            tag_titles=request.tags,
        )

        indexed = await self.index_content(content)
        if not indexed:
            logger.warning(
                "content_created_unindexed",
                content_id=content.id,
                user_id=user_id,
            )

        return CreateOutcome(content=content, indexed=indexed)

    async def list_content(self, user_id: int) -> list[Content]:
        return await self.repository.list_content_for_user(user_id)

    async def delete_content(self, user_id: int, content_id: int) -> None:
        """
        Delete one of the user's content items from both stores.

        Raises:
            NotFoundError: Missing, or owned by someone else
            StoreError: Relational delete failed
        """
        content = await self.repository.get_content_by_id(content_id)
        if content is None or content.user_id != user_id:
            raise NotFoundError(
                f"Content {content_id} not found for user {user_id}",
                details={"content_id": content_id},
            )

        result = await self.vector_index.delete_point(content_id)
        if not result.ok:
            # A dangling point only costs search quality; reindex() prunes it
            logger.warning(
                "vector_delete_skipped",
                content_id=content_id,
                error=result.error.message,
            )

        await self.repository.delete_content(content_id)

    # ================================
    # Search
    # ================================

    async def search(self, user_id: int, query: Any) -> SearchOutcome:
        """
        Semantic search over the user's own content.

        Steps:
        ------
        1. Reject a non-string or blank query
        2. Embed the query (EmbeddingError propagates)
        3. Fetch the nearest points; an index failure means no results
        4. Load only the rows owned by user_id (authorization boundary)
        5. Order by score, best first; a missing score counts as 0

        Returns:
            SearchOutcome with the original query text
        """
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("Search query must be a non-empty string", details={"field": "query"})

        vector = await self.embedder.embed_query(query)

        result = await self.vector_index.search_nearest(vector, limit=settings.SEARCH_RESULT_LIMIT)
        if not result.ok:
            logger.warning("search_degraded", user_id=user_id, error=result.error.message)
            return SearchOutcome(query=query, results=[])

        matches = result.value or []
        scores = {match.id: match.score for match in matches}
        contents = await self.repository.list_content_by_ids(list(scores), user_id)
        ranked = sorted(contents, key=lambda c: scores.get(c.id, 0.0), reverse=True)

        logger.info(
            "search_completed",
            user_id=user_id,
            matches=len(matches),
            returned=len(ranked),
        )
        return SearchOutcome(query=query, results=ranked)

    # ================================
    # Indexing / Reconciliation
    # ================================

    async def index_content(self, content: Content) -> bool:
        """Embed a Content and upsert its point. False if either step failed."""
        try:
            vector = await self.embedder.embed_content(content)
        except EmbeddingError as e:
            logger.warning("content_embedding_failed", content_id=content.id, error=e.message)
            return False

        result = await self.vector_index.upsert_point(content.id, vector, content.index_payload())
        if not result.ok:
            logger.warning("content_upsert_failed", content_id=content.id, error=result.error.message)
            return False
        return True

    async def reindex(self, user_id: Optional[int] = None, prune: bool = True) -> ReindexReport:
        """
        Bring the vector index back in line with the relational store.

        - Every Content without a point is embedded and upserted
        - With prune=True and no user_id, points without a Content are deleted

        Pruning is skipped for a single-user pass because points carry no
        owner and cannot be attributed.

        Raises:
            VectorIndexError: The point listing itself failed
        """
        report = ReindexReport()

        content_ids = await self.repository.list_content_ids(user_id)
        point_ids = set((await self.vector_index.list_point_ids()).unwrap())

        report.checked = len(content_ids)
        missing = [cid for cid in content_ids if cid not in point_ids]
        report.missing = len(missing)

        for content in await self.repository.get_contents(missing):
            if await self.index_content(content):
                report.reindexed += 1
            else:
                report.failed += 1

        if prune and user_id is None:
            known = set(content_ids)
            for point_id in sorted(point_ids - known):
                result = await self.vector_index.delete_point(point_id)
                if result.ok:
                    report.pruned += 1
                else:
                    report.failed += 1

        logger.info("reindex_completed", user_id=user_id, **report.as_dict())
        return report
