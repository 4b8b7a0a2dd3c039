"""
Content Repository

Owns the relational side of content storage: users' Links, the shared Tag
vocabulary and Content rows.

Responsibilities:
-----------------
- Tag normalization ("Go", " go " → "go") and deduplication
- Creating a Content and its Link in a single transaction
- Reclaiming a Link once the last Content referencing it is deleted
- Owner-scoped reads used by listing and by search authorization

Every write commits before returning, so callers (the indexing pipeline)
can rely on the relational record being durable before they touch the
vector index. Any SQLAlchemy failure is rolled back and re-raised as
StoreError.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from second_brain.core.config import settings
from second_brain.core.exceptions import NotFoundError, StoreError, ValidationError
from second_brain.core.logging import get_logger
from second_brain.models.content import Content, ContentType, Link, Tag

logger = get_logger(__name__)

TAG_TITLE_MAX_LENGTH = 50


def normalize_tag_titles(tag_titles: Iterable[str] | None) -> list[str]:
    """
    Trim and lower-case tag titles, dropping blanks and duplicates.

    Order of first appearance is preserved.

    Example:
        >>> normalize_tag_titles(["Go", "go ", "  Rust", ""])
        ['go', 'rust']
    """
    normalized: list[str] = []
    seen: set[str] = set()
    for raw in tag_titles or []:
        title = raw.strip().lower()
        if title and title not in seen:
            seen.add(title)
            normalized.append(title)
    return normalized


class ContentRepository:
    """Relational store access for Content, Link and Tag."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ========================================
    # Writes
    # ========================================

    async def create_content_with_link(
        self,
        user_id: int,
        title: str,
        content_type: ContentType | str,
        description: str,
        link_hash: str,
        tag_titles: Sequence[str] | None = None,
    ) -> Content:
        """
        Create a Link, connect (and lazily create) Tags, then create the Content.

        Steps:
        ------
        1. Validate title, description and link
        2. Insert the Link owned by user_id
        3. Normalize tag titles; insert only the ones that don't exist yet
        4. Insert the Content connected to the Link and all its Tags
        5. Commit and return the Content with link and tags loaded

        Raises:
            ValidationError: Empty title/link, description too long, bad type
            StoreError: Any database failure (nothing is left committed)
        """
        title = (title or "").strip()
        link_hash = (link_hash or "").strip()
        description = description or ""

        if not title:
            raise ValidationError("Title is required", details={"field": "title"})
        if not link_hash:
            raise ValidationError("Link is required", details={"field": "link"})
        if len(description) > settings.CONTENT_DESCRIPTION_MAX_LENGTH:
            raise ValidationError(
                f"Description must be at most {settings.CONTENT_DESCRIPTION_MAX_LENGTH} characters",
                details={"field": "description", "length": len(description)},
            )
        try:
            content_type = ContentType(content_type)
        except ValueError:
            raise ValidationError(
                f"Unknown content type: {content_type}",
                details={"field": "type", "allowed": [t.value for t in ContentType]},
            )

        titles = normalize_tag_titles(tag_titles)
        too_long = [t for t in titles if len(t) > TAG_TITLE_MAX_LENGTH]
        if too_long:
            raise ValidationError(
                f"Tags must be at most {TAG_TITLE_MAX_LENGTH} characters",
                details={"field": "tags", "invalid": too_long},
            )

        try:
            link = Link(hash=link_hash, user_id=user_id)
            self.db.add(link)
            await self.db.flush()

            tags = await self._get_or_create_tags(titles)

            content = Content(
                title=title,
                type=content_type,
                description=description,
                user_id=user_id,
                link=link,
                tags=tags,
            )
            self.db.add(content)
            await self.db.flush()
            content_id = content.id

            await self.db.commit()

        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "content_create_failed",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreError("Failed to create content") from e

        logger.info(
            "content_created",
            content_id=content_id,
            user_id=user_id,
            link_id=link.id,
            tag_count=len(tags),
        )

        created = await self.get_content_by_id(content_id, refresh=True)
        if created is None:
            raise StoreError(f"Content {content_id} vanished after commit")
        return created

    async def delete_content(self, content_id: int) -> None:
        """
        Delete a Content and, if nothing else references it, its Link.

        Ownership must already have been checked by the caller.

        Raises:
            NotFoundError: Content does not exist
            StoreError: Any database failure
        """
        # Reload so the tag collection is present for the association delete
        content = await self.get_content_by_id(content_id, refresh=True)
        if content is None:
            raise NotFoundError(f"Content {content_id} not found")

        link_id = content.link_id
        link_deleted = False

        try:
            # Tag associations are removed together with the row
            await self.db.delete(content)
            await self.db.flush()

            remaining = await self.db.scalar(
                select(func.count(Content.id)).where(Content.link_id == link_id)
            )
            if not remaining:
                await self.db.execute(delete(Link).where(Link.id == link_id))
                link_deleted = True

            await self.db.commit()

        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "content_delete_failed",
                content_id=content_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreError(f"Failed to delete content {content_id}") from e

        logger.info(
            "content_deleted",
            content_id=content_id,
            link_id=link_id,
            link_deleted=link_deleted,
        )

    # ========================================
    # Reads
    # ========================================

    async def get_content_by_id(self, content_id: int, refresh: bool = False) -> Content | None:
        """Get a Content (with link and tags) by id, or None."""
        query = select(Content).where(Content.id == content_id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        return await self._scalar_one_or_none(query)

    async def list_content_for_user(self, user_id: int) -> list[Content]:
        """All of a user's content, most recent first. Empty list if none."""
        query = (
            select(Content)
            .where(Content.user_id == user_id)
            .order_by(Content.id.desc())
        )
        return await self._scalars(query)

    async def list_content_by_ids(self, content_ids: Sequence[int], user_id: int) -> list[Content]:
        """
        Content rows among content_ids that belong to user_id.

        This is the authorization boundary for search: vector matches
        belonging to other users are dropped here.
        """
        if not content_ids:
            return []
        query = select(Content).where(
            Content.id.in_(list(content_ids)),
            Content.user_id == user_id,
        )
        return await self._scalars(query)

    async def list_content_ids(self, user_id: int | None = None) -> list[int]:
        """Ids of all content (or of one user's content), ascending."""
        query = select(Content.id).order_by(Content.id)
        if user_id is not None:
            query = query.where(Content.user_id == user_id)
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StoreError("Failed to list content ids") from e
        return list(result.scalars().all())

    async def get_contents(self, content_ids: Sequence[int]) -> list[Content]:
        """Content rows for the given ids regardless of owner, ascending by id."""
        if not content_ids:
            return []
        query = (
            select(Content)
            .where(Content.id.in_(list(content_ids)))
            .order_by(Content.id)
        )
        return await self._scalars(query)

    # ========================================
    # Helpers
    # ========================================

    async def _get_or_create_tags(self, titles: list[str]) -> list[Tag]:
        """
        Return Tag rows for the normalized titles, creating the missing ones.

        Two requests may both see a title as missing and both insert it.
        The insert ignores unique-constraint conflicts, and the follow-up
        select picks up whichever row won.
        """
        if not titles:
            return []

        result = await self.db.execute(select(Tag).where(Tag.title.in_(titles)))
        existing = list(result.scalars().all())
        existing_titles = {tag.title for tag in existing}

        missing = [title for title in titles if title not in existing_titles]
        created: list[Tag] = []
        if missing:
            now = datetime.now(timezone.utc)
            await self.db.execute(
                self._insert_ignoring_conflicts(
                    [{"title": title, "created_at": now, "updated_at": now} for title in missing]
                )
            )
            result = await self.db.execute(select(Tag).where(Tag.title.in_(missing)))
            created = list(result.scalars().all())

            logger.debug(
                "tags_created",
                requested=len(missing),
                titles=missing,
            )

        return sorted(existing + created, key=lambda tag: tag.title)

    def _insert_ignoring_conflicts(self, rows: list[dict]):
        """INSERT INTO tags ... ON CONFLICT (title) DO NOTHING for the current dialect."""
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as dialect_insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as dialect_insert
        else:
            # No portable upsert; the unique constraint surfaces as StoreError
            return insert(Tag).values(rows)
        return dialect_insert(Tag).values(rows).on_conflict_do_nothing(index_elements=["title"])

    async def _scalars(self, query) -> list[Content]:
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("content_query_failed", error=str(e), error_type=type(e).__name__)
            raise StoreError("Failed to query content") from e
        return list(result.scalars().all())

    async def _scalar_one_or_none(self, query) -> Content | None:
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("content_query_failed", error=str(e), error_type=type(e).__name__)
            raise StoreError("Failed to query content") from e
        return result.scalar_one_or_none()
