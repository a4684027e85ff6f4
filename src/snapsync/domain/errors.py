"""Error taxonomy for snapshot reconciliation."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import BulkWriteResult, ReconciliationSummary


class SnapsyncError(Exception):
    """Base class for every error raised by the reconciliation core."""


class InvalidKeyError(SnapsyncError, ValueError):
    """Raised when a value cannot be turned into a canonical key.

    The engine catches this per record and skips the record; it is never fatal
    to a batch.
    """


class ScopeError(SnapsyncError, ValueError):
    """Raised when a dataset or collection name is invalid or not allowed."""


class DatasetNotAllowedError(ScopeError):
    """Raised when a valid dataset name is outside the configured allowlist."""


class BatchTypeError(SnapsyncError, TypeError):
    """Raised when the request shape is wrong (e.g. records is not a sequence)."""


class AuthorizationError(SnapsyncError):
    """Raised when a request does not carry the configured API key."""


class StorageError(SnapsyncError):
    """Raised when the backing store fails during a reconciliation phase."""


class BulkWriteError(StorageError):
    """Raised after an unordered upsert batch in which some writes failed.

    Every write was attempted; ``result`` lists the failures and ``summary`` holds
    the counts of what did apply.
    """

    def __init__(
        self,
        message: str,
        *,
        result: BulkWriteResult,
        summary: ReconciliationSummary,
    ) -> None:
        super().__init__(message)
        self.result = result
        self.summary = summary
