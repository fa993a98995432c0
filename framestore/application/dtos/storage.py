"""DTOs reported by storage backends (no dependency on any backend SDK)."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class StorageObjectMeta:
    """Backend-reported object metadata. Read-only to the upload pipeline.

    etag is whatever stable content identifier the backend reports (S3 ETag,
    SHA-256 for local files, remote hash when available). content_type is None
    when the backend does not track it (e.g. S3 listings).
    """

    key: str
    size: int
    content_type: str | None
    etag: str | None = None
    last_modified: datetime | None = None
