"""
Content Models

This module contains the content-related models.

Models Included:
----------------
1. Link - A stored URL, owned by the user who created it
2. Tag - A normalized label shared by every user
3. Content - The user-facing item (title, type, description, link, tags)
4. ContentType (Enum) - Closed set of content kinds

Database Tables:
----------------
- links: Stored URLs
- tags: Global tag vocabulary (title is unique)
- contents: Content items
- content_tags: Junction table for the content-tag many-to-many relationship

Relationships:
--------------
- User (1) ←→ (Many) Content
- User (1) ←→ (Many) Link
- Content (Many) ←→ (1) Link
- Content (Many) ←→ (Many) Tag via content_tags

Lifecycle Rules:
----------------
- A Link is removed as soon as no Content references it
  (see ContentRepository.delete_content)
- Tags are never deleted, even when unreferenced

Every Content row has a matching point in the vector index with the same
id; the payload mirror of that point is built by Content.index_payload().

Learning Resources:
-------------------
- Many-to-Many: https://docs.sqlalchemy.org/en/20/orm/basic_relationships.html#many-to-many
"""

import enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import Column, Enum, ForeignKey, Integer, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from second_brain.db.base import Base, BaseModel, String50, String255, String2048

if TYPE_CHECKING:
    from second_brain.models.user import User


# ================================
# Enums
# ================================

class ContentType(str, enum.Enum):
    """
    Kind of content a user can store.

    Stored as VARCHAR with a CHECK constraint:
    CHECK (type IN ('Audio', 'Video', 'Image', 'Article'))
    """

    AUDIO = "Audio"
    VIDEO = "Video"
    IMAGE = "Image"
    ARTICLE = "Article"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value


# ================================
# Association Table
# ================================

content_tags = Table(
    "content_tags",
    Base.metadata,
    Column(
        "content_id",
        Integer,
        ForeignKey("contents.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        Integer,
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
    comment="Junction table linking contents to tags",
)


# ================================
# Link Model
# ================================

class Link(BaseModel):
    """
    A stored URL.

    Table: links
    ------------
    Owned by the user who created it. Several Content rows may reference
    the same Link; the Link is garbage-collected right after the last of
    them is deleted.
    """

    __tablename__ = "links"

    hash: Mapped[str] = mapped_column(
        String2048,
        nullable=False,
        comment="The URL (or hash) this link points to"
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Foreign key to users table"
    )

    user: Mapped["User"] = relationship("User", back_populates="links")

    def __repr__(self) -> str:
        return f"Link(id={self.id}, user_id={self.user_id}, hash='{self.hash}')"


# ================================
# Tag Model (Shared Resource)
# ================================

class Tag(BaseModel):
    """
    A normalized label.

    Table: tags
    -----------
    Titles are trimmed and lower-cased before they reach this table
    ("Go", "go " → "go"). The unique constraint on title is what resolves
    two requests creating the same new tag at the same time.
    """

    __tablename__ = "tags"

    title: Mapped[str] = mapped_column(
        String50,
        unique=True,
        nullable=False,
        comment="Normalized (trimmed, lower-cased) tag title"
    )

    def __repr__(self) -> str:
        return f"Tag(id={self.id}, title='{self.title}')"


# ================================
# Content Model
# ================================

class Content(BaseModel):
    """
    Content model - the user's stored item of interest.

    Table: contents
    ---------------
    Each content item belongs to one user, points at exactly one Link and
    carries any number of shared Tags.

    Eager Loading:
    --------------
    link and tags are loaded with every query (joined / selectin) so a
    Content returned by the repository can be serialized without further
    round trips. Async sessions cannot lazy-load.
    """

    __tablename__ = "contents"

    title: Mapped[str] = mapped_column(
        String255,
        nullable=False,
        comment="Content title"
    )

    type: Mapped[ContentType] = mapped_column(
        Enum(
            ContentType,
            name="content_type",
            native_enum=False,
            create_constraint=True,
            length=20,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        comment="Audio, Video, Image or Article"
    )

    description: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
        comment="Short description (length bounded by CONTENT_DESCRIPTION_MAX_LENGTH)"
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Foreign key to users table"
    )

    link_id: Mapped[int] = mapped_column(
        ForeignKey("links.id"),
        nullable=False,
        index=True,
        comment="Foreign key to links table"
    )

    # ================================
    # Relationships
    # ================================

    user: Mapped["User"] = relationship("User", back_populates="contents")

    link: Mapped["Link"] = relationship("Link", lazy="joined")

    tags: Mapped[list["Tag"]] = relationship(
        "Tag",
        secondary=content_tags,
        lazy="selectin",
        order_by="Tag.title",
    )

    @property
    def tag_titles(self) -> list[str]:
        """Tag titles in alphabetical order."""
        return sorted(tag.title for tag in self.tags)

    def index_payload(self) -> dict[str, Any]:
        """Payload mirror stored next to this content's vector point."""
        return {
            "id": self.id,
            "title": self.title,
            "tags": self.tag_titles,
        }

    def __repr__(self) -> str:
        return (
            f"Content(id={self.id}, user_id={self.user_id}, "
            f"type={self.type}, title='{self.title}')"
        )
