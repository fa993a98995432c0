"""API request/response schemas (pydantic)."""

from framestore.schemas.error import ErrorResponse
from framestore.schemas.health import HealthResponse, ReadinessResponse
from framestore.schemas.photo import (
    PhotoUploadResponse,
    StorageObjectListResponse,
    StorageObjectResponse,
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "PhotoUploadResponse",
    "ReadinessResponse",
    "StorageObjectListResponse",
    "StorageObjectResponse",
]
