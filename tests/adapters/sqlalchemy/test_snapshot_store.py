"""Tests for the SQLAlchemy snapshot store."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, event, inspect, select
from sqlalchemy.exc import IntegrityError

from snapsync.adapters.sqlalchemy import SqlAlchemySnapshotStore, snapshot_scope_table
from snapsync.domain.errors import StorageError
from snapsync.domain.types import RecordWrite, Scope, SnapshotQuery, WriteFailure

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

SCOPE = Scope(dataset="sales", collection="regions")
WHEN = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


def _write(key: str, **fields: object) -> RecordWrite:
    return RecordWrite(key=key, content={"name": key, **fields}, updated_at=WHEN)


def _keys(store: SqlAlchemySnapshotStore, scope: Scope = SCOPE) -> list[str]:
    records = store.find(scope, SnapshotQuery(limit=5000, fields=("name",)))
    return [record.key for record in records]


def test_migration_creates_tables_and_key_index(sqlite_engine: Engine) -> None:
    inspector = inspect(sqlite_engine)

    assert {"snapshot_record", "snapshot_scope", "alembic_version"} <= set(
        inspector.get_table_names()
    )
    indexes = {index["name"]: index for index in inspector.get_indexes("snapshot_record")}
    assert indexes["uq_snapshot_record_scope_key"]["unique"]


def test_unknown_scope_reads_empty(sql_store: SqlAlchemySnapshotStore) -> None:
    assert _keys(sql_store, Scope(dataset="nobody", collection="nothing")) == []


def test_bulk_upsert_inserts_then_replaces(sql_store: SqlAlchemySnapshotStore) -> None:
    first = sql_store.bulk_upsert_unordered(SCOPE, [_write("east", pop=1, legacy=True)])
    second = sql_store.bulk_upsert_unordered(SCOPE, [_write("east", pop=10), _write("west")])

    assert first.applied == 1
    assert second.applied == 2
    assert second.ok
    records = {
        record.key: record
        for record in sql_store.find(SCOPE, SnapshotQuery(limit=10, fields=("name",)))
    }
    assert records["east"].content == {"name": "east", "pop": 10}
    assert records["east"].updated_at == WHEN


def test_delete_where_key_not_in(sql_store: SqlAlchemySnapshotStore) -> None:
    sql_store.bulk_upsert_unordered(SCOPE, [_write("east"), _write("west"), _write("north")])
    other = Scope(dataset="sales", collection="stores")
    sql_store.bulk_upsert_unordered(other, [_write("west")])

    deleted = sql_store.delete_where_key_not_in(SCOPE, frozenset({"east", "south"}))

    assert deleted == 2
    assert _keys(sql_store) == ["east"]
    assert _keys(sql_store, other) == ["west"]


def test_delete_with_empty_key_set_clears_scope(sql_store: SqlAlchemySnapshotStore) -> None:
    sql_store.bulk_upsert_unordered(SCOPE, [_write(f"k{index}") for index in range(1200)])

    deleted = sql_store.delete_where_key_not_in(SCOPE, frozenset())

    assert deleted == 1200
    assert _keys(sql_store) == []


def test_ensure_unique_index_is_idempotent(sql_store: SqlAlchemySnapshotStore) -> None:
    sql_store.ensure_unique_index(SCOPE, "key")
    sql_store.ensure_unique_index(SCOPE, "key")

    with pytest.raises(StorageError):
        sql_store.ensure_unique_index(SCOPE, "pop")


def test_ensure_unique_index_recreates_missing_index(sqlite_engine: Engine) -> None:
    with sqlite_engine.begin() as connection:
        connection.exec_driver_sql("DROP INDEX uq_snapshot_record_scope_key")
    store = SqlAlchemySnapshotStore(sqlite_engine)

    store.ensure_unique_index(SCOPE, "key")

    indexes = inspect(sqlite_engine).get_indexes("snapshot_record")
    index_names = {index["name"] for index in indexes}
    assert "uq_snapshot_record_scope_key" in index_names


def test_content_values_json_cannot_express_are_stored_as_text(
    sql_store: SqlAlchemySnapshotStore,
) -> None:
    sql_store.bulk_upsert_unordered(
        SCOPE,
        [_write("east", opened=datetime(2020, 1, 2, tzinfo=UTC), budget=Decimal("1.50"))],
    )

    (record,) = sql_store.find(SCOPE, SnapshotQuery(limit=1, fields=("name",)))
    assert record.content["opened"] == "2020-01-02T00:00:00+00:00"
    assert record.content["budget"] == "1.50"


def test_find_filters_case_insensitively_on_one_or_two_fields(
    sql_store: SqlAlchemySnapshotStore,
) -> None:
    sql_store.bulk_upsert_unordered(
        SCOPE,
        [
            _write("East", label="Atlantic"),
            _write("west", label="Pacific"),
            _write("north", label="Arctic"),
            _write("50%_off", label="promo"),
        ],
    )

    by_name = sql_store.find(SCOPE, SnapshotQuery(limit=10, text="eas", fields=("name",)))
    by_either = sql_store.find(
        SCOPE,
        SnapshotQuery(limit=10, text="TIC", fields=("name", "label")),
    )
    literal = sql_store.find(SCOPE, SnapshotQuery(limit=10, text="%_", fields=("name",)))

    assert [record.key for record in by_name] == ["East"]
    assert sorted(record.key for record in by_either) == ["East", "north"]
    assert [record.key for record in literal] == ["50%_off"]


def test_find_respects_limit_and_orders_by_key(sql_store: SqlAlchemySnapshotStore) -> None:
    sql_store.bulk_upsert_unordered(SCOPE, [_write(key) for key in ("c", "a", "d", "b")])

    records = sql_store.find(SCOPE, SnapshotQuery(limit=3, fields=("name",)))

    assert [record.key for record in records] == ["a", "b", "c"]


def test_touch_scope_merges_metadata(
    sql_store: SqlAlchemySnapshotStore,
    sqlite_engine: Engine,
) -> None:
    sql_store.touch_scope(SCOPE, metadata={"source": "erp", "rev": 1}, updated_at=WHEN)
    sql_store.touch_scope(SCOPE, metadata={"rev": 2}, updated_at=WHEN)

    with sqlite_engine.connect() as connection:
        rows = connection.execute(
            select(snapshot_scope_table.c.scope_metadata, snapshot_scope_table.c.updated_at)
        ).all()
    assert len(rows) == 1
    assert rows[0].scope_metadata == {"source": "erp", "rev": 2}
    assert rows[0].updated_at == WHEN


def test_unserializable_write_fails_alone(sql_store: SqlAlchemySnapshotStore) -> None:
    writes = [_write("east"), _write("bad", nested={(1, 2): "x"}), _write("west")]

    result = sql_store.bulk_upsert_unordered(SCOPE, writes)

    assert result.applied == 2
    assert [failure.key for failure in result.failures] == ["bad"]
    assert "keys must be" in result.failures[0].reason
    assert _keys(sql_store) == ["east", "west"]


def test_rejected_statement_fails_alone(
    sql_store: SqlAlchemySnapshotStore,
    sqlite_engine: Engine,
) -> None:
    def reject_south(
        _conn: object,
        _cursor: object,
        _statement: str,
        parameters: object,
        _context: object,
        _executemany: bool,  # noqa: FBT001
    ) -> None:
        if "south" in str(parameters):
            raise IntegrityError("INSERT", parameters, Exception("rejected by trigger"))

    event.listen(sqlite_engine, "before_cursor_execute", reject_south)
    try:
        result = sql_store.bulk_upsert_unordered(
            SCOPE,
            [_write("east"), _write("south"), _write("west"), _write("north")],
        )
    finally:
        event.remove(sqlite_engine, "before_cursor_execute", reject_south)

    assert result.applied == 3
    assert result.failures == (WriteFailure(key="south", reason="rejected by trigger"),)
    assert _keys(sql_store) == ["east", "north", "west"]


def test_ping(sql_store: SqlAlchemySnapshotStore) -> None:
    assert sql_store.ping() is True


def test_storage_failures_surface_as_storage_error() -> None:
    # Tables were never created on this engine.
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    store = SqlAlchemySnapshotStore(engine)
    try:
        with pytest.raises(StorageError):
            store.delete_where_key_not_in(SCOPE, frozenset())
        with pytest.raises(StorageError):
            store.bulk_upsert_unordered(SCOPE, [_write("east")])
        with pytest.raises(StorageError):
            store.find(SCOPE, SnapshotQuery(limit=1, fields=("name",)))
    finally:
        engine.dispose()
