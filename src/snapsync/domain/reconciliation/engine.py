"""Snapshot reconciliation engine.

One call converges a scope to a caller-supplied snapshot in four phases:

1) record the scope and its metadata in the scope catalog
2) delete every stored record whose key is outside the retention set
3) make sure keys are unique within the scope
4) upsert every keyed incoming record as an unordered batch

The phases are not wrapped in one transaction. A storage failure aborts the
remaining phases and leaves earlier ones applied; re-issuing the identical call
converges because every phase is idempotent.

Concurrent calls on the same scope are not serialized. Their delete and upsert
phases can interleave, so one caller may briefly re-insert records another
caller just deleted. Deployments are expected to run a single writer per scope.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, TypeVar

from snapsync.domain.errors import BatchTypeError, BulkWriteError, ScopeError, StorageError
from snapsync.domain.types import (
    SCOPE_FIELD,
    UPDATED_AT_FIELD,
    RecordWrite,
    ReconciliationSummary,
    Scope,
)

from .normalize import (
    derive_keyed_records,
    normalize_retention_keys,
    normalize_scope,
    validate_key_field,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from snapsync.domain.ports.persistence import SnapshotStore
    from snapsync.domain.types import KeyedRecord

    from .normalize import KeyDerivation

log = logging.getLogger(__name__)

KEY_INDEX_FIELD = "key"

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class ReconciliationEngine:
    """Converge stored scopes to caller-supplied snapshots."""

    store: SnapshotStore
    clock: Callable[[], datetime] = field(default=_utcnow)
    default_key_field: str = "name"

    def reconcile(
        self,
        scope: Scope | tuple[str, str],
        records: object,
        *,
        retain_keys: object | None = None,
        key_field: str | None = None,
        scope_metadata: Mapping[str, object] | None = None,
    ) -> ReconciliationSummary:
        """Make ``scope`` hold exactly the retained keys plus every keyed record.

        Without ``retain_keys`` the retention set is the key set of ``records``.
        An empty retention set empties the scope before the upsert phase.
        """

        resolved_scope = _resolve_scope(scope)
        batch = _require_batch(records)
        effective_key_field = validate_key_field(
            self.default_key_field if key_field is None else key_field
        )
        derivation = derive_keyed_records(batch, effective_key_field)
        retention = (
            derivation.keys if retain_keys is None else normalize_retention_keys(retain_keys)
        )
        if scope_metadata is not None and not isinstance(scope_metadata, Mapping):
            raise BatchTypeError("Scope metadata must be a mapping")

        now = self.clock()
        log.info(
            "Reconciling %s: records=%s, skipped=%s, retained=%s, explicit_retention=%s",
            resolved_scope,
            len(derivation.records),
            derivation.skipped,
            len(retention),
            retain_keys is not None,
        )

        self._run_phase(
            "catalog",
            resolved_scope,
            lambda: self.store.touch_scope(
                resolved_scope,
                metadata=dict(scope_metadata or {}),
                updated_at=now,
            ),
        )
        deleted = self._run_phase(
            "delete",
            resolved_scope,
            lambda: self.store.delete_where_key_not_in(resolved_scope, retention),
        )
        self._run_phase(
            "ensure-index",
            resolved_scope,
            lambda: self.store.ensure_unique_index(resolved_scope, KEY_INDEX_FIELD),
        )
        writes = _build_writes(resolved_scope, derivation, now)
        result = self._run_phase(
            "upsert",
            resolved_scope,
            lambda: self.store.bulk_upsert_unordered(resolved_scope, writes),
        )

        summary = ReconciliationSummary(
            upserted=result.applied,
            retained=len(retention),
            deleted=deleted,
            skipped=derivation.skipped,
        )
        if not result.ok:
            for failure in result.failures:
                log.warning(
                    "Upsert failed in %s for key=%r: %s",
                    resolved_scope,
                    failure.key,
                    failure.reason,
                )
            raise BulkWriteError(
                f"{result.failed} of {len(writes)} upserts failed in {resolved_scope}",
                result=result,
                summary=summary,
            )

        log.info(
            "Reconciled %s: upserted=%s, deleted=%s, retained=%s, skipped=%s",
            resolved_scope,
            summary.upserted,
            summary.deleted,
            summary.retained,
            summary.skipped,
        )
        return summary

    @staticmethod
    def _run_phase(phase: str, scope: Scope, action: Callable[[], T]) -> T:
        try:
            return action()
        except StorageError as exc:
            log.error("Storage failure during %s phase for %s: %s", phase, scope, exc)
            raise


def _resolve_scope(scope: Scope | tuple[str, str]) -> Scope:
    if isinstance(scope, Scope):
        return normalize_scope(scope.dataset, scope.collection)
    if not isinstance(scope, tuple) or len(scope) != 2:
        raise ScopeError("Scope must be a (dataset, collection) pair")
    dataset, collection = scope
    return normalize_scope(dataset, collection)


def _require_batch(records: object) -> Sequence[object]:
    if isinstance(records, (str, bytes, bytearray)) or not isinstance(records, Sequence):
        raise BatchTypeError(f"Records must be a sequence, got {type(records).__name__}")
    return records


def _build_writes(
    scope: Scope,
    derivation: KeyDerivation,
    updated_at: datetime,
) -> list[RecordWrite]:
    stamp = updated_at.isoformat()
    return [_to_write(scope, record, updated_at, stamp) for record in derivation.records]


def _to_write(scope: Scope, record: KeyedRecord, updated_at: datetime, stamp: str) -> RecordWrite:
    content = dict(record.fields)
    content[UPDATED_AT_FIELD] = stamp
    content[SCOPE_FIELD] = scope.as_payload()
    return RecordWrite(key=record.key, content=content, updated_at=updated_at)
