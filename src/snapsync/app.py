"""Application wiring: build the shared store and the engine on top of it."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from snapsync.adapters.sqlalchemy import SqlAlchemySnapshotStore, create_store_engine
from snapsync.adapters.sqlalchemy.migrations import upgrade_head
from snapsync.api import SnapshotApi
from snapsync.config import get_database_config, get_service_config
from snapsync.domain.reconciliation import ReconciliationEngine

if TYPE_CHECKING:
    from snapsync.config import DatabaseConfig, ServiceConfig

log = getLogger(__name__)


def open_store(
    config: DatabaseConfig | None = None,
    *,
    migrate: bool = True,
) -> SqlAlchemySnapshotStore:
    """Create the process-wide engine once and wrap it in a store handle."""

    effective = config or get_database_config()
    engine = create_store_engine(effective)
    if migrate:
        upgrade_head(engine=engine)
    log.info("Opened snapshot store on %s", engine.url.render_as_string(hide_password=True))
    return SqlAlchemySnapshotStore(engine)


def close_store(store: SqlAlchemySnapshotStore) -> None:
    store.engine.dispose()


def build_engine(
    store: SqlAlchemySnapshotStore,
    service: ServiceConfig | None = None,
) -> ReconciliationEngine:
    effective = service or get_service_config()
    return ReconciliationEngine(store=store, default_key_field=effective.key_field)


def build_api(
    *,
    store: SqlAlchemySnapshotStore | None = None,
    service: ServiceConfig | None = None,
) -> SnapshotApi:
    """Assemble the request/response boundary for a long-running server.

    Without an explicit ``store`` this requires ``DATABASE_URI``.
    """

    effective_service = service or get_service_config()
    effective_store = store or open_store(get_database_config(require_uri=True))
    return SnapshotApi(
        engine=build_engine(effective_store, effective_service),
        store=effective_store,
        config=effective_service,
    )
