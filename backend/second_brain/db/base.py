"""
Declarative base for the relational schema.

All tables share one MetaData with a naming convention, so constraint
names are stable between create_all() and the Alembic migrations:

    pk_contents, fk_contents_link_id_links, uq_tags_title,
    ck_contents_content_type, ix_links_user_id
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, MetaData, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Root of every mapped class and association table."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class TimestampMixin:
    """Surrogate integer key plus UTC creation/update timestamps."""

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
        comment="Auto-incrementing primary key"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="Timestamp when record was created (UTC)"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        comment="Timestamp when record was last updated (UTC)"
    )


class BaseModel(Base, TimestampMixin):
    """Abstract base for users, links, tags and contents."""

    __abstract__ = True

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id})"


# Column lengths
String50 = String(50)
String255 = String(255)
String2048 = String(2048)  # URLs
