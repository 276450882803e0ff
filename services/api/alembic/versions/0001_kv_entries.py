"""kv entries

Revision ID: 0001_kv_entries
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_kv_entries"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "kv_entries",
        sa.Column("key", sa.String(), primary_key=True),
        sa.Column("value", sa.LargeBinary(), nullable=False),
        sa.Column("content_type", sa.String(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_kv_entries_updated_at", "kv_entries", ["updated_at"])


def downgrade() -> None:
    op.drop_index("ix_kv_entries_updated_at", table_name="kv_entries")
    op.drop_table("kv_entries")
