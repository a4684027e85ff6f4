"""Value types shared by the reconciliation core and its adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final, TypeAlias

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

UPDATED_AT_FIELD: Final[str] = "updatedAt"
SCOPE_FIELD: Final[str] = "scope"

Record: TypeAlias = "Mapping[str, object]"


@dataclass(frozen=True, slots=True)
class Scope:
    """A (dataset, collection) pair naming one stored collection.

    Instances are expected to hold already-normalized names; build them through
    ``snapsync.domain.reconciliation.normalize.normalize_scope``.
    """

    dataset: str
    collection: str

    def as_payload(self) -> dict[str, str]:
        return {"dataset": self.dataset, "collection": self.collection}

    def __str__(self) -> str:
        return f"{self.dataset}/{self.collection}"


@dataclass(frozen=True, slots=True)
class KeyedRecord:
    """An incoming record together with its derived key."""

    key: str
    fields: Record


@dataclass(frozen=True, slots=True)
class RecordWrite:
    """One replace-or-insert operation handed to the store."""

    key: str
    content: dict[str, object]
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class StoredRecord:
    """A record as read back from the store."""

    key: str
    content: dict[str, object]
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class WriteFailure:
    key: str
    reason: str


@dataclass(frozen=True, slots=True)
class BulkWriteResult:
    """Per-batch outcome of an unordered upsert."""

    applied: int = 0
    failures: tuple[WriteFailure, ...] = ()

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass(frozen=True, slots=True)
class ReconciliationSummary:
    """What one reconciliation call did to its scope."""

    upserted: int
    retained: int
    deleted: int = 0
    skipped: int = 0

    def as_payload(self) -> dict[str, int]:
        return {
            "upserted": self.upserted,
            "retained": self.retained,
            "deleted": self.deleted,
            "skipped": self.skipped,
        }


@dataclass(frozen=True, slots=True)
class SnapshotQuery:
    """Read-snapshot query: optional case-insensitive substring filter plus a cap."""

    limit: int
    text: str | None = None
    fields: tuple[str, ...] = field(default_factory=tuple)
