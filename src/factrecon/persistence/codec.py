"""Column codecs shared by the repositories.

Timestamps are stored as fixed-width UTC text so that lexical ORDER BY matches
chronological order on every backend. JSON payloads are stored as text.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    return datetime.now(UTC)


def format_timestamp(value: datetime | None) -> str | None:
    """Serialize a datetime as `YYYY-MM-DDTHH:MM:SS.ffffffZ`. Naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        parsed = datetime.fromisoformat(value)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def dump_json(value: Any) -> str:
    """Serialize a JSON column value.

    Raises:
        TypeError: If the value is not JSON-serialisable.
    """
    return json.dumps(value, sort_keys=True, ensure_ascii=False)


def load_json(value: str | None) -> Any:
    if value is None:
        return None
    return json.loads(value)
