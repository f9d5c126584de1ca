"""media gallery schema

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18 00:00:01.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261018_000001"
down_revision = None
branch_labels = None
depends_on = None


media_type_enum = sa.Enum("image", "video", name="media_type")


def upgrade() -> None:
    """Create media items, tag links, and search indexes."""
    op.create_table(
        "media_items",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("thumbnail_url", sa.String(length=2048), nullable=False),
        sa.Column("media_type", media_type_enum, nullable=False),
        sa.Column("width", sa.Integer(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.Column("size_bytes", sa.Integer(), nullable=True),
        sa.Column("format", sa.String(length=32), nullable=True),
        sa.Column("duration_seconds", sa.Float(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_media_items_title", "media_items", ["title"])
    op.create_index("ix_media_items_type_created", "media_items", ["media_type", "created_at"])
    op.create_index("ix_media_items_active_created", "media_items", ["is_active", "created_at"])

    op.create_table(
        "media_tags",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "media_item_id",
            sa.String(length=32),
            sa.ForeignKey("media_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.UniqueConstraint("media_item_id", "name", name="uq_media_tag"),
    )
    op.create_index("ix_media_tags_media_item_id", "media_tags", ["media_item_id"])
    op.create_index("ix_media_tags_name", "media_tags", ["name"])

    if op.get_bind().dialect.name == "postgresql":
        op.execute(
            """
            CREATE INDEX ix_media_items_text_search ON media_items USING gin (
                (
                    setweight(to_tsvector('english', title), 'A') ||
                    setweight(to_tsvector('english', coalesce(description, '')), 'C')
                )
            )
            """
        )


def downgrade() -> None:
    """Drop gallery tables and enum type."""
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP INDEX IF EXISTS ix_media_items_text_search")
    op.drop_index("ix_media_tags_name", table_name="media_tags")
    op.drop_index("ix_media_tags_media_item_id", table_name="media_tags")
    op.drop_table("media_tags")
    op.drop_index("ix_media_items_active_created", table_name="media_items")
    op.drop_index("ix_media_items_type_created", table_name="media_items")
    op.drop_index("ix_media_items_title", table_name="media_items")
    op.drop_table("media_items")
    media_type_enum.drop(op.get_bind(), checkfirst=True)
