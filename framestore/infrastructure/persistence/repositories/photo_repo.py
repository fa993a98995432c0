"""Photo repository. Returns application DTOs."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from framestore.application.dtos.photo import PhotoCreate, PhotoResult
from framestore.infrastructure.persistence.models.photo import Photo


def _photo_to_result(p: Photo) -> PhotoResult:
    """Map ORM Photo to application PhotoResult."""
    return PhotoResult(
        id=p.id,
        storage_key=p.storage_key,
        fingerprint=p.fingerprint,
        content_type=p.content_type,
        file_size=p.file_size,
        uploaded_by=p.uploaded_by,
        created_at=p.created_at,
    )


class PhotoRepository:
    """Photo metadata store: fingerprint lookup, upload recording and removal."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_key_by_fingerprint(self, fingerprint: str) -> str | None:
        """Return the storage key of the oldest photo with this fingerprint."""
        result = await self.db.execute(
            select(Photo.storage_key)
            .where(Photo.fingerprint == fingerprint)
            .order_by(Photo.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_storage_key(self, storage_key: str) -> PhotoResult | None:
        result = await self.db.execute(
            select(Photo).where(Photo.storage_key == storage_key)
        )
        photo = result.scalar_one_or_none()
        return _photo_to_result(photo) if photo else None

    async def record_upload(self, data: PhotoCreate) -> PhotoResult:
        """Insert a photo row, or refresh the existing row for an overwritten key. Commits."""
        result = await self.db.execute(
            select(Photo).where(Photo.storage_key == data.storage_key)
        )
        photo = result.scalar_one_or_none()
        if photo is None:
            photo = Photo(
                id=data.id,
                storage_key=data.storage_key,
                fingerprint=data.fingerprint,
                content_type=data.content_type,
                file_size=data.file_size,
                uploaded_by=data.uploaded_by,
            )
            self.db.add(photo)
        else:
            photo.fingerprint = data.fingerprint
            photo.content_type = data.content_type
            photo.file_size = data.file_size
            photo.uploaded_by = data.uploaded_by
        await self.db.commit()
        await self.db.refresh(photo)
        return _photo_to_result(photo)

    async def delete_by_storage_key(self, storage_key: str) -> None:
        """Remove the row for a deleted object so its fingerprint stops matching. Commits."""
        await self.db.execute(delete(Photo).where(Photo.storage_key == storage_key))
        await self.db.commit()
