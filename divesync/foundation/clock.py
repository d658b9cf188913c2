"""Timestamp normalisation.

All timestamps in divesync are integer seconds since the epoch (UTC).  This
module is the single place where boundary values (datetimes, ISO-8601
strings) are turned into that form.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import TypeAdapter, ValidationError

_DATETIME = TypeAdapter(datetime)


def to_epoch_seconds(value: Any) -> Any:
    """Convert a datetime or ISO-8601 string to epoch seconds.

    Naive datetimes are taken as UTC.  Anything else (ints, numeric strings)
    is returned unchanged for the field's own validation.
    """
    if isinstance(value, str) and not value.strip().lstrip("-").isdigit():
        try:
            value = _DATETIME.validate_python(value)
        except ValidationError as exc:
            raise ValueError(f"not an ISO-8601 timestamp: {value!r}") from exc
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    return value
