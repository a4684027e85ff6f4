from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import inspect

from snapsync.app import build_api, build_engine, close_store, open_store
from snapsync.config import DatabaseConfig, MissingConfigurationError, ServiceConfig

if TYPE_CHECKING:
    from pathlib import Path


def test_open_store_migrates_the_database(tmp_path: Path) -> None:
    store = open_store(DatabaseConfig(uri=f"sqlite+pysqlite:///{tmp_path / 'app.db'}"))
    try:
        assert store.ping()
        assert "snapshot_record" in inspect(store.engine).get_table_names()
    finally:
        close_store(store)


def test_open_store_can_skip_migrations(tmp_path: Path) -> None:
    store = open_store(
        DatabaseConfig(uri=f"sqlite+pysqlite:///{tmp_path / 'bare.db'}"),
        migrate=False,
    )
    try:
        assert inspect(store.engine).get_table_names() == []
    finally:
        close_store(store)


def test_build_engine_uses_configured_key_field(tmp_path: Path) -> None:
    store = open_store(DatabaseConfig(uri=f"sqlite+pysqlite:///{tmp_path / 'app.db'}"))
    try:
        engine = build_engine(store, ServiceConfig(key_field="pathRel"))
        assert engine.default_key_field == "pathRel"
        assert engine.store is store
    finally:
        close_store(store)


def test_build_api_requires_database_uri_without_a_store(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)

    with pytest.raises(MissingConfigurationError, match="DATABASE_URI"):
        build_api(service=ServiceConfig())


def test_build_api_opens_store_from_database_uri(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("DATABASE_URI", f"sqlite+pysqlite:///{tmp_path / 'server.db'}")

    api = build_api(service=ServiceConfig())
    try:
        assert api.health().ok
    finally:
        close_store(api.store)  # pyright: ignore[reportArgumentType]
