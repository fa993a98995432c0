"""Application ports: storage, repositories, services."""

from framestore.application.interfaces.repositories import IPhotoRepository
from framestore.application.interfaces.services import IFingerprint, IFingerprinter
from framestore.application.interfaces.storage import StorageProtocol

__all__ = [
    "IFingerprint",
    "IFingerprinter",
    "IPhotoRepository",
    "StorageProtocol",
]
