"""create stored_values table

Revision ID: b7c8d9e0f1a2
Revises:
Create Date: 2026-10-19 09:00:00.000000

This migration:
1. Creates the stored_values table backing the durable session store
2. Indexes updated_at for maintenance queries over stale sessions

Keys are namespaced by session (`session_<ms>_<suffix>_<name>`), so the
primary key doubles as the per-session lookup index.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "b7c8d9e0f1a2"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the stored_values table."""
    op.create_table(
        "stored_values",
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("key"),
    )
    op.create_index(
        "ix_stored_values_updated_at",
        "stored_values",
        ["updated_at"],
        unique=False,
    )


def downgrade() -> None:
    """Drop the stored_values table."""
    op.drop_index("ix_stored_values_updated_at", table_name="stored_values")
    op.drop_table("stored_values")
