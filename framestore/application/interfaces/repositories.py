"""Repository interfaces (ports) for the application layer."""

from __future__ import annotations

from typing import Protocol

from framestore.application.dtos.photo import PhotoCreate, PhotoResult


class IPhotoRepository(Protocol):
    """Protocol for the photo metadata store (lookups, upload records, deletions)."""

    async def find_key_by_fingerprint(self, fingerprint: str) -> str | None:
        """Return the storage key of a photo already carrying fingerprint, or None."""
        ...

    async def record_upload(self, data: PhotoCreate) -> PhotoResult:
        """Persist (or refresh, for an existing storage key) the photo record."""
        ...

    async def delete_by_storage_key(self, storage_key: str) -> None:
        """Drop the record for storage_key; a missing record is not an error."""
        ...
