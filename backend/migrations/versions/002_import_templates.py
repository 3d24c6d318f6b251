"""Add import_templates: saved import mode and grouping choices per user.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "import_templates",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("mode", sa.String(10), nullable=False),
        sa.Column("grouping_mode", sa.String(10), nullable=False),
        sa.Column(
            "default_wishlist_id",
            UUID(as_uuid=True),
            sa.ForeignKey("wishlists.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint(
            "mode IN ('merge', 'new', 'split')", name="ck_import_templates_mode"
        ),
        sa.CheckConstraint(
            "grouping_mode IN ('store', 'category', 'price', 'person', 'occasion')",
            name="ck_import_templates_grouping_mode",
        ),
    )
    op.create_index("idx_import_templates_user", "import_templates", ["user_id"])


def downgrade() -> None:
    op.drop_index("idx_import_templates_user", table_name="import_templates")
    op.drop_table("import_templates")
