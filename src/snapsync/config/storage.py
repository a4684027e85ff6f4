"""Database location and connection settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_int, optional_env_var, require_env_vars

APP_DIR_NAME: Final[str] = "snapsync"
DEFAULT_DB_FILENAME: Final[str] = "snapsync.db"
DEFAULT_POOL_TIMEOUT_SECONDS: Final[int] = 30


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def database_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.database_filename

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Connection settings for the shared storage engine."""

    uri: str
    pool_timeout_seconds: int = DEFAULT_POOL_TIMEOUT_SECONDS
    echo: bool = False


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    env_dir = optional_env_var("SNAPSYNC_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    return StorageConfig(data_dir=data_dir)


def get_database_config(
    *,
    storage: StorageConfig | None = None,
    require_uri: bool = False,
) -> DatabaseConfig:
    """Build connection settings from the environment.

    Long-running services pass ``require_uri=True`` so a missing ``DATABASE_URI``
    fails at startup instead of silently falling back to a local SQLite file.
    """

    timeout = env_int("SNAPSYNC_POOL_TIMEOUT_SECONDS", DEFAULT_POOL_TIMEOUT_SECONDS)
    echo = (optional_env_var("SNAPSYNC_SQL_ECHO") or "").lower() in {"1", "true", "yes"}
    if require_uri:
        env_uri = require_env_vars(("DATABASE_URI",))["DATABASE_URI"]
        return DatabaseConfig(uri=env_uri, pool_timeout_seconds=timeout, echo=echo)
    env_uri = optional_env_var("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri, pool_timeout_seconds=timeout, echo=echo)
    storage_config = storage or get_storage_config()
    return DatabaseConfig(
        uri=storage_config.database_uri(),
        pool_timeout_seconds=timeout,
        echo=echo,
    )


def get_database_uri() -> str:
    """Compute the database URI, respecting ``DATABASE_URI`` overrides."""

    return get_database_config().uri
