"""Pytest configuration and fixtures for framestore.

Environment is set before any framestore import so get_settings() sees the
test values. HTTP tests run the app over ASGITransport (no lifespan), so the
storage backend and photo repository are injected as fakes.
"""

import hashlib
import os
import tempfile
from collections.abc import AsyncIterator
from datetime import datetime
from typing import BinaryIO

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("STORAGE_PROVIDER", "local")
os.environ.setdefault("LOCAL_PATH", tempfile.mkdtemp(prefix="framestore-test-"))
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient

from framestore.api.v1.dependencies import get_photo_repo
from framestore.application.dtos.photo import PhotoCreate, PhotoResult
from framestore.application.dtos.storage import StorageObjectMeta
from framestore.core.config import get_settings
from framestore.domain.value_objects import StorageKey
from framestore.infrastructure.exceptions import StorageNotFoundError, StorageUploadError
from framestore.infrastructure.security.jwt import create_session_token
from framestore.shared.utils.datetime import utc_now

get_settings.cache_clear()


class FakeStorage:
    """In-memory storage backend that counts create calls."""

    provider = "fake"

    def __init__(self, fail_with: Exception | None = None) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.create_calls: list[tuple[str, str]] = []
        self.modified: dict[str, datetime] = {}
        self.fail_with = fail_with

    async def create(self, key: StorageKey, data: BinaryIO, content_type: str) -> StorageObjectMeta:
        self.create_calls.append((key.value, content_type))
        if self.fail_with is not None:
            raise self.fail_with
        content = data.read()
        self.objects[key.value] = (content, content_type)
        self.modified[key.value] = utc_now()
        return self._describe(key.value)

    async def read(self, key: StorageKey) -> AsyncIterator[bytes]:
        if key.value not in self.objects:
            raise StorageNotFoundError(key.value)
        yield self.objects[key.value][0]

    async def delete(self, key: StorageKey) -> None:
        self.objects.pop(key.value, None)

    def _describe(self, key: str) -> StorageObjectMeta:
        content, content_type = self.objects[key]
        return StorageObjectMeta(
            key=key,
            size=len(content),
            content_type=content_type,
            etag=hashlib.sha256(content).hexdigest(),
            last_modified=self.modified.get(key),
        )

    async def meta(self, key: StorageKey) -> StorageObjectMeta:
        if key.value not in self.objects:
            raise StorageNotFoundError(key.value)
        return self._describe(key.value)

    def public_url(self, key: StorageKey) -> str:
        return f"/fake/{key.value}"

    async def list(self, prefix: str = "") -> AsyncIterator[StorageObjectMeta]:
        for key in sorted(self.objects):
            if key.startswith(prefix):
                yield await self.meta(StorageKey(key))

    async def aclose(self) -> None:
        return None


class FakePhotoRepository:
    """In-memory photo metadata store keyed by storage key."""

    def __init__(self) -> None:
        self.records: dict[str, PhotoCreate] = {}

    async def find_key_by_fingerprint(self, fingerprint: str) -> str | None:
        for record in self.records.values():
            if record.fingerprint == fingerprint:
                return record.storage_key
        return None

    async def record_upload(self, data: PhotoCreate) -> PhotoResult:
        self.records[data.storage_key] = data
        return PhotoResult(
            id=data.id,
            storage_key=data.storage_key,
            fingerprint=data.fingerprint,
            content_type=data.content_type,
            file_size=data.file_size,
            uploaded_by=data.uploaded_by,
            created_at=utc_now(),
        )

    async def delete_by_storage_key(self, storage_key: str) -> None:
        self.records.pop(storage_key, None)


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def failing_storage() -> FakeStorage:
    return FakeStorage(fail_with=StorageUploadError("any", "connection reset"))


@pytest.fixture
def photo_repo() -> FakePhotoRepository:
    return FakePhotoRepository()


@pytest.fixture
def session_token() -> str:
    return create_session_token({"sub": "user-1", "email": "user@example.com"})


@pytest.fixture
def app(fake_storage: FakeStorage, photo_repo: FakePhotoRepository):
    """Fresh app per test with fake storage and repository injected."""
    from framestore.main import create_app

    application = create_app()
    application.state.storage = fake_storage
    application.state.key_locks = None
    application.dependency_overrides[get_photo_repo] = lambda: photo_repo
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncIterator[AsyncClient]:
    """Async HTTP client against the FastAPI app (ASGI), without a session."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def auth_client(app, session_token: str) -> AsyncIterator[AsyncClient]:
    """Async HTTP client carrying a valid session cookie."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        cookies={get_settings().session_cookie_name: session_token},
    ) as ac:
        yield ac
