"""
created_at / updated_at stamping for inserts and updates.
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

CREATED_AT = "created_at"
UPDATED_AT = "updated_at"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _timestamp() -> str:
    """UTC now as ``YYYY-MM-DD HH:MM:SS`` (accepted by every SQL backend)."""
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


def stamp_created(record: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of *record* with created_at/updated_at filled where absent (both get the same value)."""
    out = dict(record)
    now = _timestamp()
    for column in (CREATED_AT, UPDATED_AT):
        if out.get(column) is None:
            out[column] = now
    return out


def stamp_updated(record: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of *record* with updated_at filled where absent."""
    out = dict(record)
    if out.get(UPDATED_AT) is None:
        out[UPDATED_AT] = _timestamp()
    return out
