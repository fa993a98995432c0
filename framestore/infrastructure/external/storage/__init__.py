"""Storage: S3-compatible, local filesystem, and remote file-manager backends.

Factory creates exactly one backend from settings. Implementations are
loaded lazily inside StorageFactory.create_storage_service() so that the
local provider never imports boto3 and only the active backend's client is
constructed.

Implementations satisfy StorageProtocol (create, read, delete, meta,
public_url, list).
"""

from framestore.application.interfaces.storage import StorageProtocol
from framestore.infrastructure.external.storage.factory import StorageFactory

__all__ = [
    "StorageFactory",
    "StorageProtocol",
]
