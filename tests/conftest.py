from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from snapsync.adapters.sqlalchemy import SqlAlchemySnapshotStore, create_store_engine
from snapsync.adapters.sqlalchemy.migrations import upgrade_head
from snapsync.config import DatabaseConfig
from snapsync.domain.reconciliation import ReconciliationEngine
from snapsync.domain.types import Scope
from tests.helpers.snapshot_store import InMemorySnapshotStore, fixed_clock

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture
def sales_regions() -> Scope:
    return Scope(dataset="sales", collection="regions")


@pytest.fixture
def memory_store() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()


@pytest.fixture
def memory_engine(memory_store: InMemorySnapshotStore) -> ReconciliationEngine:
    return ReconciliationEngine(store=memory_store, clock=fixed_clock)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_store_engine(DatabaseConfig(uri="sqlite+pysqlite:///:memory:"))
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sql_store(sqlite_engine: Engine) -> SqlAlchemySnapshotStore:
    return SqlAlchemySnapshotStore(sqlite_engine)


@pytest.fixture
def sql_engine(sql_store: SqlAlchemySnapshotStore) -> ReconciliationEngine:
    return ReconciliationEngine(store=sql_store, clock=fixed_clock)
