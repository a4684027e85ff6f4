"""Snapshot store backed by a SQLAlchemy engine."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Final, cast

from sqlalchemy import String, Table, and_, delete, func, insert, or_, select, text, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError

from snapsync.adapters.sqlalchemy.mappings import (
    dumps_json,
    snapshot_record_key_index,
    snapshot_record_table,
    snapshot_scope_table,
)
from snapsync.domain.errors import StorageError
from snapsync.domain.types import BulkWriteResult, StoredRecord, WriteFailure

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Mapping, Sequence
    from datetime import datetime

    from sqlalchemy import ColumnElement
    from sqlalchemy.engine import Connection, Engine

    from snapsync.domain.types import RecordWrite, Scope, SnapshotQuery

log = logging.getLogger(__name__)

DELETE_CHUNK_SIZE: Final[int] = 500
UNIQUE_FIELDS: Final[frozenset[str]] = frozenset({"key"})

_NATIVE_UPSERT: Final[dict[str, Callable[[Table], Any]]] = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class SqlAlchemySnapshotStore:
    """``SnapshotStore`` over one shared engine.

    Each phase runs in its own transaction, and every upsert of a bulk batch runs
    in its own transaction so a failing write leaves the others applied.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def touch_scope(
        self,
        scope: Scope,
        *,
        metadata: Mapping[str, object],
        updated_at: datetime,
    ) -> None:
        table = snapshot_scope_table
        try:
            with self.engine.begin() as connection:
                existing = connection.execute(
                    select(table.c.scope_metadata).where(_in_scope(table, scope))
                ).scalar_one_or_none()
                merged = {**(existing or {}), **metadata}
                _upsert_row(
                    connection,
                    table,
                    match={"dataset": scope.dataset, "collection": scope.collection},
                    values={"scope_metadata": merged, "updated_at": updated_at},
                )
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to record scope {scope}: {exc}") from exc

    def delete_where_key_not_in(self, scope: Scope, keys: Collection[str]) -> int:
        table = snapshot_record_table
        try:
            with self.engine.begin() as connection:
                stored = connection.execute(
                    select(table.c.key).where(_in_scope(table, scope))
                ).scalars()
                stale = sorted(key for key in stored if key not in keys)
                deleted = 0
                for start in range(0, len(stale), DELETE_CHUNK_SIZE):
                    chunk = stale[start : start + DELETE_CHUNK_SIZE]
                    result = connection.execute(
                        delete(table).where(_in_scope(table, scope)).where(table.c.key.in_(chunk))
                    )
                    deleted += result.rowcount
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to delete stale records in {scope}: {exc}") from exc
        log.debug("Deleted %s stale records in %s", deleted, scope)
        return deleted

    def ensure_unique_index(self, scope: Scope, field: str) -> None:
        if field not in UNIQUE_FIELDS:
            raise StorageError(f"Cannot enforce uniqueness on field {field!r} in {scope}")
        try:
            with self.engine.begin() as connection:
                snapshot_record_key_index.create(connection, checkfirst=True)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to ensure key index for {scope}: {exc}") from exc

    def bulk_upsert_unordered(
        self,
        scope: Scope,
        writes: Sequence[RecordWrite],
    ) -> BulkWriteResult:
        applied = 0
        failures: list[WriteFailure] = []
        try:
            with self.engine.connect() as connection:
                for write in writes:
                    try:
                        dumps_json(write.content)
                    except (TypeError, ValueError) as exc:
                        failures.append(WriteFailure(key=write.key, reason=str(exc)))
                        continue
                    try:
                        with connection.begin():
                            _upsert_row(
                                connection,
                                snapshot_record_table,
                                match={
                                    "dataset": scope.dataset,
                                    "collection": scope.collection,
                                    "key": write.key,
                                },
                                values={"content": write.content, "updated_at": write.updated_at},
                            )
                    except (IntegrityError, DataError) as exc:
                        failures.append(WriteFailure(key=write.key, reason=str(exc.orig)))
                    else:
                        applied += 1
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Upsert batch aborted in {scope} after {applied} writes: {exc}"
            ) from exc
        return BulkWriteResult(applied=applied, failures=tuple(failures))

    def find(self, scope: Scope, query: SnapshotQuery) -> list[StoredRecord]:
        """Return records of ``scope`` ordered by key, filtered by ``query.text``.

        Matching lower-cases both sides in the database. SQLite's ``lower()`` only
        folds ASCII letters, so non-ASCII text matches case-insensitively on
        PostgreSQL but only with matching case on SQLite.
        """

        table = snapshot_record_table
        stmt = (
            select(table.c.key, table.c.content, table.c.updated_at)
            .where(_in_scope(table, scope))
            .order_by(table.c.key)
            .limit(query.limit)
        )
        if query.text:
            needle = query.text.lower()
            stmt = stmt.where(
                or_(
                    *(
                        func.lower(table.c.content[field].as_string(), type_=String).contains(
                            needle, autoescape=True
                        )
                        for field in query.fields
                    )
                )
            )
        try:
            with self.engine.connect() as connection:
                rows = connection.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read {scope}: {exc}") from exc
        return [
            StoredRecord(
                key=row.key,
                content=cast("dict[str, object]", row.content),
                updated_at=row.updated_at,
            )
            for row in rows
        ]

    def ping(self) -> bool:
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StorageError(f"Storage unreachable: {exc}") from exc
        return True


def _in_scope(table: Table, scope: Scope) -> ColumnElement[bool]:
    return and_(table.c.dataset == scope.dataset, table.c.collection == scope.collection)


def _upsert_row(
    connection: Connection,
    table: Table,
    *,
    match: Mapping[str, object],
    values: Mapping[str, object],
) -> None:
    """Replace ``values`` on the row identified by ``match`` or insert it, atomically."""

    native_insert = _NATIVE_UPSERT.get(connection.dialect.name)
    if native_insert is not None:
        stmt = native_insert(table).values({**match, **values})
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c[name] for name in match],
            set_={name: stmt.excluded[name] for name in values},
        )
        connection.execute(stmt)
        return

    condition = and_(*(table.c[name] == value for name, value in match.items()))
    existing = connection.execute(select(table.c.id).where(condition)).scalar_one_or_none()
    if existing is None:
        connection.execute(insert(table).values({**match, **values}))
    else:
        connection.execute(update(table).where(table.c.id == existing).values(dict(values)))


if TYPE_CHECKING:
    from snapsync.domain.ports.persistence import SnapshotStore

    _store_check: SnapshotStore = SqlAlchemySnapshotStore(cast("Engine", object()))
