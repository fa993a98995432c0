"""Tests for PhotoRepository on an in-memory SQLite database."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from framestore.application.dtos.photo import PhotoCreate
from framestore.infrastructure.persistence.database import Base
from framestore.infrastructure.persistence.models import Photo  # noqa: F401
from framestore.infrastructure.persistence.repositories import PhotoRepository


@pytest.fixture
async def db_session():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


def _photo(photo_id: str, key: str, fingerprint: str) -> PhotoCreate:
    return PhotoCreate(
        id=photo_id,
        storage_key=key,
        fingerprint=fingerprint,
        content_type="image/jpeg",
        file_size=10,
        uploaded_by="user-1",
    )


class TestPhotoRepository:
    async def test_record_and_lookup(self, db_session: AsyncSession) -> None:
        repo = PhotoRepository(db_session)
        created = await repo.record_upload(_photo("p1", "2024/a.jpg", "fp-a"))
        assert created.storage_key == "2024/a.jpg"
        assert created.created_at is not None
        assert await repo.find_key_by_fingerprint("fp-a") == "2024/a.jpg"
        assert await repo.find_key_by_fingerprint("fp-unknown") is None

    async def test_overwritten_key_updates_existing_row(self, db_session: AsyncSession) -> None:
        repo = PhotoRepository(db_session)
        await repo.record_upload(_photo("p1", "2024/a.jpg", "fp-old"))
        updated = await repo.record_upload(_photo("p2", "2024/a.jpg", "fp-new"))
        assert updated.id == "p1"
        assert updated.fingerprint == "fp-new"
        assert await repo.find_key_by_fingerprint("fp-old") is None
        stored = await repo.get_by_storage_key("2024/a.jpg")
        assert stored is not None and stored.fingerprint == "fp-new"

    async def test_delete_by_storage_key_forgets_fingerprint(self, db_session: AsyncSession) -> None:
        repo = PhotoRepository(db_session)
        await repo.record_upload(_photo("p1", "2024/a.jpg", "fp-a"))
        await repo.delete_by_storage_key("2024/a.jpg")
        assert await repo.get_by_storage_key("2024/a.jpg") is None
        assert await repo.find_key_by_fingerprint("fp-a") is None
        # Missing rows are ignored.
        await repo.delete_by_storage_key("2024/a.jpg")
