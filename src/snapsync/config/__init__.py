"""Application configuration helpers."""

from __future__ import annotations

from .env import env_int, env_list, optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging, resolve_log_level
from .service import (
    DEFAULT_KEY_FIELD,
    DEFAULT_QUERY_LIMIT,
    MAX_QUERY_LIMIT,
    ServiceConfig,
    get_service_config,
)
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)

__all__ = [
    "DEFAULT_KEY_FIELD",
    "DEFAULT_QUERY_LIMIT",
    "MAX_QUERY_LIMIT",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "ServiceConfig",
    "StorageConfig",
    "configure_logging",
    "env_int",
    "env_list",
    "get_database_config",
    "get_database_uri",
    "get_service_config",
    "get_storage_config",
    "optional_env_var",
    "require_env_vars",
    "resolve_log_level",
]
