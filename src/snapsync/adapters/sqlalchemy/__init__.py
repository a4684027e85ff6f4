"""SQLAlchemy adapter package for snapsync."""

from __future__ import annotations

from .mappings import (
    create_store_engine,
    metadata,
    snapshot_record_table,
    snapshot_scope_table,
)
from .store import SqlAlchemySnapshotStore

__all__ = [
    "SqlAlchemySnapshotStore",
    "create_store_engine",
    "metadata",
    "snapshot_record_table",
    "snapshot_scope_table",
]
