"""Shared utilities: datetime."""

from framestore.shared.utils.datetime import (
    ensure_utc,
    from_timestamp_utc,
    parse_iso_utc,
    utc_now,
)

__all__ = [
    "utc_now",
    "ensure_utc",
    "from_timestamp_utc",
    "parse_iso_utc",
]
