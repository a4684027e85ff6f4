"""Read-snapshot queries over a stored scope."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from snapsync.domain.errors import BatchTypeError
from snapsync.domain.types import SnapshotQuery

from .normalize import normalize_scope

if TYPE_CHECKING:
    from snapsync.domain.ports.persistence import SnapshotStore
    from snapsync.domain.types import StoredRecord

MAX_FILTER_FIELDS = 2


def build_query(
    *,
    text: str | None,
    fields: Sequence[str],
    limit: int | None,
    default_limit: int,
    max_limit: int,
) -> SnapshotQuery:
    """Validate filter fields and clamp ``limit`` into ``[1, max_limit]``."""

    cleaned = tuple(name.strip() for name in fields if name and name.strip())
    if not cleaned:
        raise BatchTypeError("At least one filter field is required")
    if len(cleaned) > MAX_FILTER_FIELDS:
        raise BatchTypeError(f"At most {MAX_FILTER_FIELDS} filter fields are supported")
    effective = default_limit if limit is None else limit
    needle = text.strip() if text else None
    return SnapshotQuery(
        limit=max(1, min(effective, max_limit)),
        text=needle or None,
        fields=cleaned,
    )


def read_snapshot(
    store: SnapshotStore,
    dataset: object,
    collection: object,
    query: SnapshotQuery,
) -> list[StoredRecord]:
    """Return stored records of a scope ordered by key; unknown scopes read empty."""

    scope = normalize_scope(dataset, collection)
    return store.find(scope, query)
