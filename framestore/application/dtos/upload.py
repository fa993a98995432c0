"""DTOs for the upload use case (no dependency on HTTP or ORM)."""

from collections.abc import AsyncIterator
from dataclasses import dataclass

from framestore.application.dtos.user import SessionUser


@dataclass(frozen=True)
class UploadRequest:
    """One upload as seen by UploadPipeline. Transient; never persisted.

    key and declared_content_type are raw client input; the pipeline
    normalizes both before anything downstream sees them.
    """

    key: str | None
    body: AsyncIterator[bytes]
    declared_content_type: str | None
    acting_user: SessionUser | None


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a successful upload.

    skipped is True when an identical object already existed (skip mode) and
    storage was not written; key is then the existing object's key.
    warning is set in warn mode when the content duplicates duplicate_of.
    """

    key: str
    content_type: str
    size: int
    fingerprint: str
    skipped: bool = False
    duplicate_of: str | None = None
    warning: str | None = None
