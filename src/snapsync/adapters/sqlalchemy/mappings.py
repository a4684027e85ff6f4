"""SQLAlchemy table metadata for stored snapshots."""

from __future__ import annotations

import json
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
    create_engine,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from snapsync.config import DatabaseConfig

NAME_LENGTH: Final[int] = 128
KEY_INDEX_NAME: Final[str] = "uq_snapshot_record_scope_key"


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

snapshot_record_table = Table(
    "snapshot_record",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("dataset", String(NAME_LENGTH), nullable=False),
    Column("collection", String(NAME_LENGTH), nullable=False),
    Column("key", String, nullable=False),
    Column("content", JSON, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
)

# Created by the migration and re-asserted by ``ensure_unique_index``.
snapshot_record_key_index = Index(
    KEY_INDEX_NAME,
    snapshot_record_table.c.dataset,
    snapshot_record_table.c.collection,
    snapshot_record_table.c.key,
    unique=True,
)

snapshot_scope_table = Table(
    "snapshot_scope",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("dataset", String(NAME_LENGTH), nullable=False),
    Column("collection", String(NAME_LENGTH), nullable=False),
    Column("scope_metadata", JSON, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    UniqueConstraint("dataset", "collection", name="uq_snapshot_scope_dataset_collection"),
)


def _json_default(value: object) -> object:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def dumps_json(value: object) -> str:
    """Serialize record content; values JSON cannot express are stored as text."""

    return json.dumps(value, default=_json_default, separators=(",", ":"))


def create_store_engine(config: DatabaseConfig) -> Engine:
    """Create the process-wide engine (and connection pool) for the store."""

    options: dict[str, object] = {"future": True, "echo": config.echo}
    if not config.uri.startswith("sqlite"):
        options["pool_timeout"] = config.pool_timeout_seconds
        options["pool_pre_ping"] = True
    return create_engine(config.uri, json_serializer=dumps_json, **options)
