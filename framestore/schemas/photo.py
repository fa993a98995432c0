"""Photo upload and storage object API schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class PhotoUploadResponse(BaseModel):
    """Response for PUT /photos/upload."""

    ok: bool = True
    key: str
    skipped: bool = Field(
        default=False, description="True when identical content already existed and nothing was written"
    )
    warning: str | None = Field(default=None, description="Advisory, e.g. duplicate content in warn mode")


class StorageObjectResponse(BaseModel):
    """Backend-reported object metadata plus its delivery URL."""

    key: str
    size: int
    content_type: str | None = None
    etag: str | None = None
    last_modified: datetime | None = None
    url: str


class StorageObjectListResponse(BaseModel):
    """Response for GET /photos/objects."""

    prefix: str
    items: list[StorageObjectResponse]
    truncated: bool = False
