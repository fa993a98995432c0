"""Domain value objects."""

from framestore.domain.value_objects.core import (
    GENERIC_CONTENT_TYPE,
    ContentType,
    StorageKey,
)

__all__ = [
    "GENERIC_CONTENT_TYPE",
    "ContentType",
    "StorageKey",
]
