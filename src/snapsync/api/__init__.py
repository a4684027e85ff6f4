"""Request/response boundary for the snapshot service."""

from __future__ import annotations

from .handlers import API_KEY_HEADER, ApiResponse, SnapshotApi
from .schema import QueryRequest, ReconcileRequest, parse_request

__all__ = [
    "API_KEY_HEADER",
    "ApiResponse",
    "QueryRequest",
    "ReconcileRequest",
    "SnapshotApi",
    "parse_request",
]
