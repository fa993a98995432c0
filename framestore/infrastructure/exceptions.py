"""Infrastructure exceptions for storage operations.

Storage errors extend FramestoreException so presentation can map them
to HTTP responses consistently. Every backend variant raises only these,
whatever its native failure shape (botocore ClientError, OSError, remote
API envelope).
"""

from framestore.domain.exceptions import FramestoreException


class StorageException(FramestoreException):
    """Base exception for storage operations."""


class StorageNotFoundError(StorageException):
    """Object not found in storage."""

    title = "Not found"

    def __init__(self, key: str) -> None:
        super().__init__(
            f"Object not found: {key}",
            "STORAGE_NOT_FOUND",
            {"key": key},
        )


class StorageInvalidKeyError(StorageException):
    """Key resolves outside the backend's root (traversal)."""

    title = "Invalid key"

    def __init__(self, key: str, reason: str = "path escapes storage root") -> None:
        super().__init__(
            f"Invalid storage key: {key}",
            "INVALID_KEY",
            {"key": key, "reason": reason},
        )


class StorageUploadError(StorageException):
    """Object write failed."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(
            f"Failed to store object: {key}",
            "STORAGE_UPLOAD_ERROR",
            {"key": key, "reason": reason},
        )


class StorageDownloadError(StorageException):
    """Object read, metadata lookup or listing failed."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(
            f"Failed to read object: {key}",
            "STORAGE_DOWNLOAD_ERROR",
            {"key": key, "reason": reason},
        )


class StorageDeleteError(StorageException):
    """Object deletion failed."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(
            f"Failed to delete object: {key}",
            "STORAGE_DELETE_ERROR",
            {"key": key, "reason": reason},
        )
