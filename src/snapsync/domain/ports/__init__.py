"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import SnapshotStore

__all__ = ["SnapshotStore"]
