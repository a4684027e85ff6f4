from __future__ import annotations

import json
from datetime import UTC, date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.dialects import sqlite

from snapsync.adapters.sqlalchemy.mappings import UTCDateTime, dumps_json


def test_dumps_json_stores_unsupported_values_as_text() -> None:
    encoded = dumps_json(
        {
            "when": datetime(2026, 1, 2, 3, 4, tzinfo=UTC),
            "day": date(2026, 1, 2),
            "amount": Decimal("12.30"),
            "tags": {"b", "a"},
            "plain": [1, "x", None],
        }
    )

    assert json.loads(encoded) == {
        "when": "2026-01-02T03:04:00+00:00",
        "day": "2026-01-02",
        "amount": "12.30",
        "tags": ["a", "b"],
        "plain": [1, "x", None],
    }


def test_utc_datetime_normalizes_to_utc() -> None:
    column_type = UTCDateTime()
    dialect = sqlite.dialect()
    offset = timezone(timedelta(hours=2))

    bound = column_type.process_bind_param(datetime(2026, 1, 1, 14, 0, tzinfo=offset), dialect)
    naive = column_type.process_bind_param(datetime(2026, 1, 1, 12, 0), dialect)
    loaded = column_type.process_result_value(datetime(2026, 1, 1, 12, 0), dialect)

    assert bound == datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
    assert naive == datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
    assert loaded is not None
    assert loaded.tzinfo is UTC
    assert column_type.process_bind_param(None, dialect) is None

