"""DTOs for photo records (no dependency on ORM)."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class PhotoCreate:
    """Input for recording a committed upload (write-model)."""

    id: str
    storage_key: str
    fingerprint: str
    content_type: str
    file_size: int
    uploaded_by: str | None


@dataclass(frozen=True)
class PhotoResult:
    """Photo read-model."""

    id: str
    storage_key: str
    fingerprint: str
    content_type: str
    file_size: int
    uploaded_by: str | None
    created_at: datetime | None
