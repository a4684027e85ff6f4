"""Create snapshot record and scope catalog tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00

"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sa
from alembic import op

from snapsync.adapters.sqlalchemy.mappings import NAME_LENGTH, UTCDateTime

if TYPE_CHECKING:
    from collections.abc import Sequence

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "snapshot_record",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("dataset", sa.String(NAME_LENGTH), nullable=False),
        sa.Column("collection", sa.String(NAME_LENGTH), nullable=False),
        sa.Column("key", sa.String(), nullable=False),
        sa.Column("content", sa.JSON(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_snapshot_record"),
    )
    op.create_index(
        "uq_snapshot_record_scope_key",
        "snapshot_record",
        ["dataset", "collection", "key"],
        unique=True,
    )
    op.create_table(
        "snapshot_scope",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("dataset", sa.String(NAME_LENGTH), nullable=False),
        sa.Column("collection", sa.String(NAME_LENGTH), nullable=False),
        sa.Column("scope_metadata", sa.JSON(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_snapshot_scope"),
        sa.UniqueConstraint(
            "dataset",
            "collection",
            name="uq_snapshot_scope_dataset_collection",
        ),
    )


def downgrade() -> None:
    op.drop_table("snapshot_scope")
    op.drop_index("uq_snapshot_record_scope_key", table_name="snapshot_record")
    op.drop_table("snapshot_record")
