"""Domain enumerations for framestore.

Enums represent fixed sets of configuration-selected behavior.
"""

from enum import Enum


class StorageProvider(str, Enum):
    """Storage backend discriminant. Exactly one is active per process."""

    S3 = "s3"
    LOCAL = "local"
    OPENLIST = "openlist"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid provider values as strings."""
        return [provider.value for provider in cls]


class DuplicateCheckMode(str, Enum):
    """What the upload policy does when identical content already exists.

    SKIP returns the existing key without writing, WARN writes and flags the
    response, BLOCK rejects the upload.
    """

    SKIP = "skip"
    WARN = "warn"
    BLOCK = "block"
