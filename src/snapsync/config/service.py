"""Settings for the request/response boundary."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import env_int, env_list, optional_env_var
from .errors import ConfigurationError

DEFAULT_KEY_FIELD: Final[str] = "name"
DEFAULT_QUERY_LIMIT: Final[int] = 200
MAX_QUERY_LIMIT: Final[int] = 5000


@dataclass(frozen=True, slots=True)
class ServiceConfig:
    """Access control and request defaults.

    ``api_key`` of ``None`` disables the key check. ``allowed_datasets`` of ``None``
    admits every dataset whose name passes normalization.
    """

    api_key: str | None = None
    allowed_datasets: frozenset[str] | None = None
    key_field: str = DEFAULT_KEY_FIELD
    query_default_limit: int = DEFAULT_QUERY_LIMIT
    query_max_limit: int = MAX_QUERY_LIMIT

    def __post_init__(self) -> None:
        if not self.key_field.strip():
            raise ConfigurationError("Key field must not be blank")
        if self.query_default_limit < 1 or self.query_max_limit < 1:
            raise ConfigurationError("Query limits must be positive")
        if self.query_default_limit > self.query_max_limit:
            raise ConfigurationError("Default query limit exceeds the maximum")

    def dataset_allowed(self, dataset: str) -> bool:
        return self.allowed_datasets is None or dataset in self.allowed_datasets


def get_service_config() -> ServiceConfig:
    allowed = env_list("SNAPSYNC_ALLOWED_DATASETS")
    return ServiceConfig(
        api_key=optional_env_var("SNAPSYNC_API_KEY"),
        allowed_datasets=(
            frozenset(name.casefold() for name in allowed) if allowed is not None else None
        ),
        key_field=optional_env_var("SNAPSYNC_KEY_FIELD") or DEFAULT_KEY_FIELD,
        query_default_limit=env_int("SNAPSYNC_QUERY_DEFAULT_LIMIT", DEFAULT_QUERY_LIMIT),
        query_max_limit=env_int("SNAPSYNC_QUERY_MAX_LIMIT", MAX_QUERY_LIMIT),
    )
