"""Domain layer: value objects, enums, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from framestore.domain.enums import DuplicateCheckMode, StorageProvider
from framestore.domain.exceptions import (
    DuplicateContentException,
    FramestoreException,
    InvalidKeyException,
    MalformedBodyException,
    MissingKeyException,
    PayloadTooLargeException,
    StorageConfigurationError,
    StorageWriteFailedException,
    UnauthorizedException,
    UnsupportedMediaTypeException,
)
from framestore.domain.value_objects import ContentType, StorageKey

__all__ = [
    # Enums
    "DuplicateCheckMode",
    "StorageProvider",
    # Exceptions
    "DuplicateContentException",
    "FramestoreException",
    "InvalidKeyException",
    "MalformedBodyException",
    "MissingKeyException",
    "PayloadTooLargeException",
    "StorageConfigurationError",
    "StorageWriteFailedException",
    "UnauthorizedException",
    "UnsupportedMediaTypeException",
    # Value objects
    "ContentType",
    "StorageKey",
]
