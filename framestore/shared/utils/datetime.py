"""UTC timestamps for storage metadata.

Backends report modification times in three shapes (boto3 datetimes, stat
mtimes, ISO strings from the remote file manager); StorageObjectMeta always
carries timezone-aware UTC or None.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Naive values are taken as UTC; aware values are converted."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def from_timestamp_utc(timestamp: float) -> datetime:
    """os.stat mtime -> aware UTC datetime."""
    return datetime.fromtimestamp(timestamp, tz=UTC)


def parse_iso_utc(value: object) -> datetime | None:
    """ISO 8601 string (a trailing 'Z' included) -> aware UTC; None if absent or unparseable."""
    if not value or not isinstance(value, str):
        return None
    try:
        return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None
