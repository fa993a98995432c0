"""Photo API: raw-body upload plus object listing, metadata and deletion on the active backend."""

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response
from starlette.requests import ClientDisconnect

from framestore.api.v1.dependencies import (
    get_current_user,
    get_photo_repo,
    get_storage,
    get_upload_pipeline,
)
from framestore.application.dtos.storage import StorageObjectMeta
from framestore.application.dtos.upload import UploadRequest
from framestore.application.dtos.user import SessionUser
from framestore.application.interfaces.repositories import IPhotoRepository
from framestore.application.interfaces.storage import StorageProtocol
from framestore.application.use_cases.uploads import UploadPipeline
from framestore.core.limiter import limit_upload
from framestore.domain.exceptions import InvalidKeyException, MalformedBodyException
from framestore.domain.value_objects import ContentType, StorageKey
from framestore.schemas.error import ErrorResponse
from framestore.schemas.photo import (
    PhotoUploadResponse,
    StorageObjectListResponse,
    StorageObjectResponse,
)

router = APIRouter()

_UPLOAD_ERRORS = {
    status: {"model": ErrorResponse} for status in (400, 401, 409, 413, 415, 500)
}


async def _request_body(request: Request) -> AsyncIterator[bytes]:
    """Stream the raw body; a client disconnect mid-body is a malformed upload."""
    try:
        async for chunk in request.stream():
            yield chunk
    except ClientDisconnect as e:
        raise MalformedBodyException("Client disconnected before the upload completed") from e


def _to_response(storage: StorageProtocol, meta: StorageObjectMeta) -> StorageObjectResponse:
    return StorageObjectResponse(
        key=meta.key,
        size=meta.size,
        content_type=meta.content_type,
        etag=meta.etag,
        last_modified=meta.last_modified,
        url=storage.public_url(StorageKey(meta.key)),
    )


@router.put("/upload", response_model=PhotoUploadResponse, responses=_UPLOAD_ERRORS)
@limit_upload
async def upload_photo(
    request: Request,
    current_user: Annotated[SessionUser, Depends(get_current_user)],
    pipeline: Annotated[UploadPipeline, Depends(get_upload_pipeline)],
    key: str | None = Query(None, description="Target storage key, e.g. 2024/01/img.jpg"),
) -> PhotoUploadResponse:
    """Store the raw request body under key on the active storage backend."""
    declared = ContentType.parse(request.headers.get("content-type"))
    result = await pipeline.handle(
        UploadRequest(
            key=key,
            body=_request_body(request),
            declared_content_type=str(declared),
            acting_user=current_user,
        )
    )
    return PhotoUploadResponse(key=result.key, skipped=result.skipped, warning=result.warning)


@router.get("/objects", response_model=StorageObjectListResponse)
async def list_objects(
    current_user: Annotated[SessionUser, Depends(get_current_user)],
    storage: Annotated[StorageProtocol, Depends(get_storage)],
    prefix: str = Query("", description="Key prefix, e.g. 2024/01/"),
    limit: int = Query(100, ge=1, le=1000),
) -> StorageObjectListResponse:
    """List stored objects whose key starts with prefix (at most limit items)."""
    prefix = prefix.lstrip("/")
    if ".." in prefix.split("/"):
        raise InvalidKeyException(prefix, "prefix escapes storage root")
    items: list[StorageObjectResponse] = []
    truncated = False
    async for meta in storage.list(prefix):
        if len(items) >= limit:
            truncated = True
            break
        items.append(_to_response(storage, meta))
    return StorageObjectListResponse(prefix=prefix, items=items, truncated=truncated)


@router.get("/objects/meta", response_model=StorageObjectResponse)
async def get_object_meta(
    current_user: Annotated[SessionUser, Depends(get_current_user)],
    storage: Annotated[StorageProtocol, Depends(get_storage)],
    key: str | None = Query(None),
) -> StorageObjectResponse:
    """Backend-reported metadata and delivery URL for one object."""
    storage_key = UploadPipeline.normalize_key(key)
    return _to_response(storage, await storage.meta(storage_key))


@router.delete("/objects", status_code=204)
async def delete_object(
    current_user: Annotated[SessionUser, Depends(get_current_user)],
    storage: Annotated[StorageProtocol, Depends(get_storage)],
    photo_repo: Annotated[IPhotoRepository, Depends(get_photo_repo)],
    key: str | None = Query(None),
) -> Response:
    """Delete one object and its photo record. Deleting a missing key succeeds."""
    storage_key = UploadPipeline.normalize_key(key)
    await storage.delete(storage_key)
    await photo_repo.delete_by_storage_key(storage_key.value)
    return Response(status_code=204)
