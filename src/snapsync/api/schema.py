"""Pydantic request models for the snapshot API."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from snapsync.domain.errors import BatchTypeError


class ApiBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ReconcileRequest(ApiBaseModel):
    dataset: str
    collection: str
    records: list[Any]
    retain_keys: list[Any] | None = None
    key_field: str | None = None
    scope_metadata: dict[str, Any] | None = None


class QueryRequest(ApiBaseModel):
    dataset: str
    collection: str
    q: str | None = None
    fields: list[str] = Field(default_factory=list[str])
    limit: int | None = None

TModel = TypeVar("TModel", bound=ApiBaseModel)


def parse_request(model: type[TModel], payload: object) -> TModel:
    """Validate ``payload`` or raise ``BatchTypeError`` naming the offending fields."""

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
            for error in exc.errors()
        )
        raise BatchTypeError(f"Malformed request: {problems}") from exc
