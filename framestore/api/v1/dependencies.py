"""Presentation-layer dependency injection (composition root).

Provides FastAPI Depends() for the session user, the storage backend, the
photo repository and the upload pipeline. Routes depend only on these,
never on infrastructure directly.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from framestore.application.dtos.user import SessionUser
from framestore.application.interfaces.repositories import IPhotoRepository
from framestore.application.interfaces.storage import StorageProtocol
from framestore.application.services.upload_policy import UploadPolicy
from framestore.application.use_cases.uploads import UploadPipeline
from framestore.core.config import Settings, get_settings
from framestore.domain.exceptions import UnauthorizedException
from framestore.infrastructure.persistence.database import get_db
from framestore.infrastructure.persistence.repositories import PhotoRepository
from framestore.infrastructure.security.jwt import verify_token

logger = logging.getLogger(__name__)

_http_bearer = HTTPBearer(auto_error=False)


def get_settings_dep() -> Settings:
    return get_settings()


def get_storage(request: Request) -> StorageProtocol:
    """Return the process-wide storage backend built in the lifespan."""
    return request.app.state.storage


async def get_photo_repo(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> IPhotoRepository:
    return PhotoRepository(db)


async def get_current_user_optional(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_http_bearer)],
    settings: Annotated[Settings, Depends(get_settings_dep)],
) -> SessionUser | None:
    """Return the session user from the session cookie (or Bearer token); None if absent or invalid."""
    token = request.cookies.get(settings.session_cookie_name)
    if not token and credentials:
        token = credentials.credentials
    if not token:
        return None
    try:
        payload = verify_token(token, settings)
    except ValueError as e:
        logger.debug("Rejected session token: %s", e)
        return None
    email = payload.get("email")
    return SessionUser(id=str(payload["sub"]), email=str(email) if email else None)


async def get_current_user(
    current_user: Annotated[SessionUser | None, Depends(get_current_user_optional)],
) -> SessionUser:
    """Return the session user; raise Unauthorized (401) if missing or invalid."""
    if current_user is None:
        raise UnauthorizedException()
    return current_user


def get_upload_pipeline(
    request: Request,
    storage: Annotated[StorageProtocol, Depends(get_storage)],
    photo_repo: Annotated[IPhotoRepository, Depends(get_photo_repo)],
    settings: Annotated[Settings, Depends(get_settings_dep)],
) -> UploadPipeline:
    """Upload pipeline wired to the active backend and the photo repository."""
    policy = UploadPolicy.from_settings(
        settings, duplicate_lookup=photo_repo.find_key_by_fingerprint
    )
    return UploadPipeline(
        storage=storage,
        policy=policy,
        photo_repo=photo_repo,
        key_locks=getattr(request.app.state, "key_locks", None),
        spool_max_memory=settings.upload_spool_max_memory,
    )
