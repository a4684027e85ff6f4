"""Framework-free request handlers for the snapshot API.

Each handler returns an ``ApiResponse`` whose body is the ``{"ok": bool, ...}``
envelope; any HTTP server can mount them by mapping ``status`` and ``body``.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeAlias

from snapsync.domain.errors import (
    AuthorizationError,
    BatchTypeError,
    BulkWriteError,
    DatasetNotAllowedError,
    ScopeError,
    StorageError,
)
from snapsync.domain.reconciliation import build_query, normalize_name, read_snapshot

from .schema import QueryRequest, ReconcileRequest, parse_request

if TYPE_CHECKING:
    from collections.abc import Callable

    from snapsync.config import ServiceConfig
    from snapsync.domain.ports.persistence import SnapshotStore
    from snapsync.domain.reconciliation import ReconciliationEngine

log = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"

Payload: TypeAlias = dict[str, object]


@dataclass(frozen=True, slots=True)
class ApiResponse:
    status: int
    body: Payload

    @property
    def ok(self) -> bool:
        return bool(self.body.get("ok"))


def _success(payload: Payload) -> ApiResponse:
    return ApiResponse(status=200, body={"ok": True, **payload})


def _failure(status: int, error: BaseException, **extra: object) -> ApiResponse:
    return ApiResponse(status=status, body={"ok": False, "error": str(error), **extra})


class SnapshotApi:
    """Health, reconcile and read-snapshot operations behind one envelope."""

    def __init__(
        self,
        *,
        engine: ReconciliationEngine,
        store: SnapshotStore,
        config: ServiceConfig,
    ) -> None:
        self.engine = engine
        self.store = store
        self.config = config

    def health(self) -> ApiResponse:
        try:
            self.store.ping()
        except StorageError as exc:
            log.warning("Health check failed: %s", exc)
            return _failure(500, exc)
        return _success({})

    def reconcile(self, body: object, *, api_key: str | None = None) -> ApiResponse:
        def action() -> Payload:
            self._authenticate(api_key)
            request = parse_request(ReconcileRequest, body)
            self._authorize_dataset(request.dataset)
            summary = self.engine.reconcile(
                (request.dataset, request.collection),
                request.records,
                retain_keys=request.retain_keys,
                key_field=request.key_field,
                scope_metadata=request.scope_metadata,
            )
            return summary.as_payload()

        return self._respond("reconcile", action)

    def query(self, params: object, *, api_key: str | None = None) -> ApiResponse:
        def action() -> Payload:
            self._authenticate(api_key)
            request = parse_request(QueryRequest, params)
            self._authorize_dataset(request.dataset)
            query = build_query(
                text=request.q,
                fields=request.fields or [self.config.key_field],
                limit=request.limit,
                default_limit=self.config.query_default_limit,
                max_limit=self.config.query_max_limit,
            )
            records = read_snapshot(self.store, request.dataset, request.collection, query)
            return {"count": len(records), "records": [record.content for record in records]}

        return self._respond("query", action)

    def _authenticate(self, api_key: str | None) -> None:
        expected = self.config.api_key
        if expected is None:
            return
        if api_key is None or not hmac.compare_digest(api_key.encode(), expected.encode()):
            raise AuthorizationError("Unauthorized")

    def _authorize_dataset(self, dataset: str) -> None:
        try:
            name = normalize_name(dataset)
        except ValueError as exc:
            raise ScopeError(str(exc)) from exc
        if not self.config.dataset_allowed(name):
            raise DatasetNotAllowedError(f"Dataset {name!r} is not allowed")

    def _respond(self, operation: str, action: Callable[[], Payload]) -> ApiResponse:
        try:
            return _success(action())
        except AuthorizationError as exc:
            return _failure(401, exc)
        except DatasetNotAllowedError as exc:
            return _failure(403, exc)
        except (ScopeError, BatchTypeError) as exc:
            log.info("Rejected %s request: %s", operation, exc)
            return _failure(400, exc)
        except BulkWriteError as exc:
            return _failure(
                500,
                exc,
                **exc.summary.as_payload(),
                failed=exc.result.failed,
                failures=[
                    {"key": item.key, "reason": item.reason} for item in exc.result.failures
                ],
            )
        except StorageError as exc:
            return _failure(500, exc)
        except Exception as exc:
            log.exception("Unexpected failure during %s", operation)
            return _failure(500, exc)
