"""Delivery route for objects on the local filesystem backend.

LocalStorageService.public_url() returns local_base_url + prefix + key; this
router serves those paths by streaming from the active backend.
"""

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from framestore.domain.value_objects import GENERIC_CONTENT_TYPE, StorageKey
from framestore.infrastructure.exceptions import StorageNotFoundError


def create_delivery_router(base_url: str, prefix: str = "") -> APIRouter:
    """Router serving GET {base_url}/{prefix}{key} from request.app.state.storage."""
    router = APIRouter()
    namespace = prefix.strip("/") + "/" if prefix.strip("/") else ""

    @router.get(base_url.rstrip("/") + "/{path:path}", include_in_schema=False)
    async def deliver_object(path: str, request: Request) -> StreamingResponse:
        if not path.startswith(namespace):
            raise StorageNotFoundError(path)
        try:
            key = StorageKey(path[len(namespace):])
        except ValueError as e:
            raise StorageNotFoundError(path) from e
        storage = request.app.state.storage
        meta = await storage.meta(key)
        return StreamingResponse(
            storage.read(key),
            media_type=meta.content_type or GENERIC_CONTENT_TYPE,
            headers={"Content-Length": str(meta.size)},
        )

    return router
