"""Storage port (DIP). Implementations: S3StorageService, LocalStorageService, OpenListStorageService."""

from collections.abc import AsyncIterator
from typing import BinaryIO, Protocol

from framestore.application.dtos.storage import StorageObjectMeta
from framestore.domain.value_objects import StorageKey


class StorageProtocol(Protocol):
    """Uniform contract for every storage backend.

    Callers never branch on which variant is active. All failures surface as
    framestore.infrastructure.exceptions.StorageException subclasses.
    """

    provider: str

    async def create(
        self,
        key: StorageKey,
        data: BinaryIO,
        content_type: str,
    ) -> StorageObjectMeta:
        """Write data under key, replacing any existing object (safe to retry)."""
        ...

    def read(self, key: StorageKey) -> AsyncIterator[bytes]:
        """Stream object content. Raises StorageNotFoundError if missing."""
        ...

    async def delete(self, key: StorageKey) -> None:
        """Delete object. Deleting a missing key is not an error."""
        ...

    async def meta(self, key: StorageKey) -> StorageObjectMeta:
        """Return metadata without downloading. Raises StorageNotFoundError if missing."""
        ...

    def public_url(self, key: StorageKey) -> str:
        """Deterministic delivery URL or path for key (no I/O)."""
        ...

    def list(self, prefix: str = "") -> AsyncIterator[StorageObjectMeta]:
        """Lazily yield metadata for objects whose key starts with prefix."""
        ...

    async def aclose(self) -> None:
        """Release clients or connections held by the backend."""
        ...
