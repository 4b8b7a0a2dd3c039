"""
User Model

Table: users
------------
Stores the account that owns links and content. Rows are created by the
signup endpoint and are never mutated or deleted by the indexing pipeline.
"""

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from second_brain.db.base import BaseModel, String255

# Type checking imports - only used for type hints, avoids circular imports
if TYPE_CHECKING:
    from second_brain.models.content import Content, Link


class User(BaseModel):
    """
    User account.

    The username is an e-mail address; it is unique across the system.
    The password is stored as a bcrypt hash and is opaque to everything
    outside second_brain.core.security.
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(
        String255,
        unique=True,
        index=True,
        nullable=False,
        comment="Login name (e-mail address), unique"
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt password hash"
    )

    # ================================
    # Relationships
    # ================================

    contents: Mapped[list["Content"]] = relationship(
        "Content",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    # Delete user → the database cascades to their content

    links: Mapped[list["Link"]] = relationship(
        "Link",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"User(id={self.id}, username='{self.username}')"
