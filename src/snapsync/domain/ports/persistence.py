"""Ports for persisting snapshot collections."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping, Sequence
    from datetime import datetime

    from snapsync.domain.types import (
        BulkWriteResult,
        RecordWrite,
        Scope,
        SnapshotQuery,
        StoredRecord,
    )


@runtime_checkable
class SnapshotStore(Protocol):
    """Storage contract the reconciliation engine drives.

    Implementations translate backend failures into
    ``snapsync.domain.errors.StorageError``. Addressing a scope that was never
    written behaves like an empty collection.
    """

    def touch_scope(
        self,
        scope: Scope,
        *,
        metadata: Mapping[str, object],
        updated_at: datetime,
    ) -> None:
        """Record ``scope`` in the scope catalog, replacing its metadata."""
        ...

    def delete_where_key_not_in(self, scope: Scope, keys: Collection[str]) -> int:
        """Delete every record in ``scope`` whose key is not in ``keys``; return the count."""
        ...

    def ensure_unique_index(self, scope: Scope, field: str) -> None:
        """Guarantee ``field`` is unique within ``scope``; a no-op when already in place."""
        ...

    def bulk_upsert_unordered(
        self,
        scope: Scope,
        writes: Sequence[RecordWrite],
    ) -> BulkWriteResult:
        """Apply every write independently; one failing write must not stop the rest."""
        ...

    def find(self, scope: Scope, query: SnapshotQuery) -> list[StoredRecord]: ...

    def ping(self) -> bool: ...
