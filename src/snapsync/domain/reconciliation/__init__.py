"""Snapshot reconciliation core.

Flow of one call:
1) derive and validate keys (``normalize``)
2) delete the complement of the retention set, ensure key uniqueness, upsert all
   keyed records (``engine``)
"""

from __future__ import annotations

from .engine import ReconciliationEngine
from .normalize import (
    KeyDerivation,
    derive_keyed_records,
    normalize_name,
    normalize_record_key,
    normalize_retention_keys,
    normalize_scope,
)
from .query import build_query, read_snapshot

__all__ = [
    "KeyDerivation",
    "ReconciliationEngine",
    "build_query",
    "derive_keyed_records",
    "normalize_name",
    "normalize_record_key",
    "normalize_retention_keys",
    "normalize_scope",
    "read_snapshot",
]
