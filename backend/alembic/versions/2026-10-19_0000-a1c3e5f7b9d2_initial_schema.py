"""initial_schema_users_links_tags_contents

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f7b9d2'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False, comment='Auto-incrementing primary key'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was created (UTC)'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was last updated (UTC)'),
    ]


def upgrade() -> None:
    """
    Create the content store schema.

    Tables:
    1. users - accounts
    2. links - stored URLs, owned by a user
    3. tags - global, normalized tag vocabulary
    4. contents - content items (one link, many tags)
    5. content_tags - junction table contents ↔ tags
    """

    # ================================
    # users
    # ================================
    op.create_table(
        'users',
        *_timestamps(),
        sa.Column('username', sa.String(length=255), nullable=False, comment='Login name (e-mail address), unique'),
        sa.Column('hashed_password', sa.String(length=255), nullable=False, comment='bcrypt password hash'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
    )
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)

    # ================================
    # links
    # ================================
    op.create_table(
        'links',
        *_timestamps(),
        sa.Column('hash', sa.String(length=2048), nullable=False, comment='The URL (or hash) this link points to'),
        sa.Column('user_id', sa.Integer(), nullable=False, comment='Foreign key to users table'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_links_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_links')),
    )
    op.create_index(op.f('ix_links_user_id'), 'links', ['user_id'], unique=False)

    # ================================
    # tags
    # ================================
    op.create_table(
        'tags',
        *_timestamps(),
        sa.Column('title', sa.String(length=50), nullable=False, comment='Normalized (trimmed, lower-cased) tag title'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_tags')),
        sa.UniqueConstraint('title', name=op.f('uq_tags_title')),
    )

    # ================================
    # contents
    # ================================
    op.create_table(
        'contents',
        *_timestamps(),
        sa.Column('title', sa.String(length=255), nullable=False, comment='Content title'),
        sa.Column('type', sa.String(length=20), nullable=False, comment='Audio, Video, Image or Article'),
        sa.Column('description', sa.String(length=255), nullable=False, comment='Short description (length bounded by CONTENT_DESCRIPTION_MAX_LENGTH)'),
        sa.Column('user_id', sa.Integer(), nullable=False, comment='Foreign key to users table'),
        sa.Column('link_id', sa.Integer(), nullable=False, comment='Foreign key to links table'),
        sa.CheckConstraint(
            "type IN ('Audio', 'Video', 'Image', 'Article')",
            name=op.f('ck_contents_content_type'),
        ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_contents_user_id_users'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['link_id'], ['links.id'], name=op.f('fk_contents_link_id_links')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_contents')),
    )
    op.create_index(op.f('ix_contents_user_id'), 'contents', ['user_id'], unique=False)
    op.create_index(op.f('ix_contents_link_id'), 'contents', ['link_id'], unique=False)

    # ================================
    # content_tags
    # ================================
    op.create_table(
        'content_tags',
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('tag_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['contents.id'], name=op.f('fk_content_tags_content_id_contents'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tag_id'], ['tags.id'], name=op.f('fk_content_tags_tag_id_tags'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('content_id', 'tag_id', name=op.f('pk_content_tags')),
        comment='Junction table linking contents to tags',
    )
    op.create_index(op.f('ix_content_tags_tag_id'), 'content_tags', ['tag_id'], unique=False)


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index(op.f('ix_content_tags_tag_id'), table_name='content_tags')
    op.drop_table('content_tags')
    op.drop_index(op.f('ix_contents_link_id'), table_name='contents')
    op.drop_index(op.f('ix_contents_user_id'), table_name='contents')
    op.drop_table('contents')
    op.drop_table('tags')
    op.drop_index(op.f('ix_links_user_id'), table_name='links')
    op.drop_table('links')
    op.drop_index(op.f('ix_users_username'), table_name='users')
    op.drop_table('users')
