"""
Database Models

Import models from this module to ensure they're registered with SQLAlchemy:

    from second_brain.models import User, Content, Link, Tag

This ensures that:
1. Alembic can detect all models for migrations
2. Relationships work correctly
3. All models are available throughout the app
"""

from second_brain.models.content import (
    Content,
    ContentType,
    Link,
    Tag,
    content_tags,
)
from second_brain.models.user import User

__all__ = [
    # User models
    "User",
    # Content models
    "Link",
    "Tag",
    "Content",
    "content_tags",
    # Enums
    "ContentType",
]
