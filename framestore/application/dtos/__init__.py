"""Application DTOs (plain dataclasses crossing layer boundaries)."""

from framestore.application.dtos.photo import PhotoCreate, PhotoResult
from framestore.application.dtos.storage import StorageObjectMeta
from framestore.application.dtos.upload import UploadRequest, UploadResult
from framestore.application.dtos.user import SessionUser

__all__ = [
    "PhotoCreate",
    "PhotoResult",
    "SessionUser",
    "StorageObjectMeta",
    "UploadRequest",
    "UploadResult",
]
