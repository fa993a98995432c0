"""Tests for UploadPipeline against a call-counting fake backend."""

import hashlib
from collections.abc import AsyncIterator

import pytest

from framestore.application.dtos.upload import UploadRequest
from framestore.application.dtos.user import SessionUser
from framestore.application.services import KeyLockRegistry, UploadPolicy
from framestore.application.use_cases.uploads import UploadPipeline
from framestore.core.config import DEFAULT_MIME_WHITELIST
from framestore.domain.exceptions import (
    DuplicateContentException,
    InvalidKeyException,
    MalformedBodyException,
    MissingKeyException,
    PayloadTooLargeException,
    StorageWriteFailedException,
    UnauthorizedException,
    UnsupportedMediaTypeException,
)
from framestore.domain.value_objects import GENERIC_CONTENT_TYPE
from framestore.infrastructure.exceptions import StorageDownloadError, StorageInvalidKeyError

MiB = 1024 * 1024
USER = SessionUser(id="user-1", email="user@example.com")


async def _body(*chunks: bytes) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


def _request(
    key: str | None,
    *chunks: bytes,
    content_type: str | None = GENERIC_CONTENT_TYPE,
    user: SessionUser | None = USER,
) -> UploadRequest:
    return UploadRequest(
        key=key,
        body=_body(*chunks),
        declared_content_type=content_type,
        acting_user=user,
    )


def _pipeline(storage, repo=None, **policy_overrides) -> UploadPipeline:
    policy_kwargs = {
        "whitelist_enabled": True,
        "whitelist": DEFAULT_MIME_WHITELIST,
        "max_upload_size": 128 * MiB,
        "duplicate_check_enabled": False,
        "duplicate_lookup": repo.find_key_by_fingerprint if repo else None,
    }
    policy_kwargs.update(policy_overrides)
    return UploadPipeline(
        storage=storage,
        policy=UploadPolicy(**policy_kwargs),
        photo_repo=repo,
        spool_max_memory=1 * MiB,
    )


class TestScenarios:
    async def test_mov_upload_resolves_quicktime_and_writes_once(self, fake_storage) -> None:
        payload = b"\x01" * (10 * MiB)
        result = await _pipeline(fake_storage).handle(
            _request("2024/01/img.mov", payload[: 4 * MiB], payload[4 * MiB :])
        )
        assert result.key == "2024/01/img.mov"
        assert result.content_type == "video/quicktime"
        assert result.size == 10 * MiB
        assert result.fingerprint == hashlib.sha256(payload).hexdigest()
        assert fake_storage.create_calls == [("2024/01/img.mov", "video/quicktime")]
        assert fake_storage.objects["2024/01/img.mov"][0] == payload

    async def test_oversized_payload_never_reaches_backend(self, fake_storage) -> None:
        with pytest.raises(PayloadTooLargeException):
            await _pipeline(fake_storage).handle(_request("2024/01/img.mov", bytes(200 * MiB)))
        assert fake_storage.create_calls == []

    async def test_running_size_aborts_before_reading_rest(self, fake_storage) -> None:
        consumed: list[int] = []

        async def body() -> AsyncIterator[bytes]:
            for i in range(10):
                consumed.append(i)
                yield b"x" * 10

        request = UploadRequest(
            key="a.jpg", body=body(), declared_content_type="image/jpeg", acting_user=USER
        )
        with pytest.raises(PayloadTooLargeException):
            await _pipeline(fake_storage, max_upload_size=25).handle(request)
        assert consumed == [0, 1, 2]
        assert fake_storage.create_calls == []

    async def test_leading_slash_is_stripped(self, fake_storage) -> None:
        result = await _pipeline(fake_storage).handle(
            _request("/2024/img.jpg", b"data", content_type="image/jpeg")
        )
        assert result.key == "2024/img.jpg"


class TestRejections:
    async def test_no_session_is_unauthorized(self, fake_storage) -> None:
        with pytest.raises(UnauthorizedException):
            await _pipeline(fake_storage).handle(_request("a.jpg", b"x", user=None))

    async def test_missing_key(self, fake_storage) -> None:
        with pytest.raises(MissingKeyException):
            await _pipeline(fake_storage).handle(_request(None, b"x"))
        with pytest.raises(MissingKeyException):
            await _pipeline(fake_storage).handle(_request("", b"x"))

    async def test_traversal_key_is_invalid(self, fake_storage) -> None:
        with pytest.raises(InvalidKeyException):
            await _pipeline(fake_storage).handle(_request("../escape.jpg", b"x"))
        assert fake_storage.create_calls == []

    async def test_empty_body_is_malformed(self, fake_storage) -> None:
        with pytest.raises(MalformedBodyException):
            await _pipeline(fake_storage).handle(_request("a.jpg", content_type="image/jpeg"))
        assert fake_storage.create_calls == []

    async def test_whitelist_on_rejects_non_member(self, fake_storage) -> None:
        with pytest.raises(UnsupportedMediaTypeException):
            await _pipeline(fake_storage).handle(
                _request("doc.pdf", b"%PDF", content_type="application/pdf")
            )
        assert fake_storage.create_calls == []

    async def test_whitelist_off_accepts_non_member(self, fake_storage) -> None:
        result = await _pipeline(fake_storage, whitelist_enabled=False).handle(
            _request("doc.pdf", b"%PDF", content_type="application/pdf")
        )
        assert result.content_type == "application/pdf"
        assert len(fake_storage.create_calls) == 1

    async def test_backend_failure_becomes_write_failed(self, failing_storage) -> None:
        with pytest.raises(StorageWriteFailedException) as exc_info:
            await _pipeline(failing_storage).handle(
                _request("a.jpg", b"data", content_type="image/jpeg")
            )
        assert exc_info.value.details == {}
        assert "connection reset" not in exc_info.value.message

    async def test_backend_traversal_rejection_is_invalid_key(self, fake_storage) -> None:
        fake_storage.fail_with = StorageInvalidKeyError("a.jpg")
        with pytest.raises(InvalidKeyException):
            await _pipeline(fake_storage).handle(
                _request("a.jpg", b"data", content_type="image/jpeg")
            )


class TestDuplicates:
    async def _seed(self, storage, repo) -> None:
        await _pipeline(storage, repo).handle(
            _request("2023/original.jpg", b"same-bytes", content_type="image/jpeg")
        )

    async def test_upload_is_recorded(self, fake_storage, photo_repo) -> None:
        await self._seed(fake_storage, photo_repo)
        record = photo_repo.records["2023/original.jpg"]
        assert record.fingerprint == hashlib.sha256(b"same-bytes").hexdigest()
        assert record.uploaded_by == "user-1"
        assert record.file_size == len(b"same-bytes")

    async def test_skip_returns_existing_key_without_write(self, fake_storage, photo_repo) -> None:
        await self._seed(fake_storage, photo_repo)
        result = await _pipeline(
            fake_storage, photo_repo, duplicate_check_enabled=True, duplicate_check_mode="skip"
        ).handle(_request("2024/copy.jpg", b"same-bytes", content_type="image/jpeg"))
        assert result.skipped
        assert result.key == "2023/original.jpg"
        assert len(fake_storage.create_calls) == 1
        assert "2024/copy.jpg" not in fake_storage.objects

    async def test_warn_writes_and_flags(self, fake_storage, photo_repo) -> None:
        await self._seed(fake_storage, photo_repo)
        result = await _pipeline(
            fake_storage, photo_repo, duplicate_check_enabled=True, duplicate_check_mode="warn"
        ).handle(_request("2024/copy.jpg", b"same-bytes", content_type="image/jpeg"))
        assert not result.skipped
        assert result.key == "2024/copy.jpg"
        assert result.duplicate_of == "2023/original.jpg"
        assert result.warning
        assert "2024/copy.jpg" in fake_storage.objects

    async def test_block_rejects_without_write(self, fake_storage, photo_repo) -> None:
        await self._seed(fake_storage, photo_repo)
        with pytest.raises(DuplicateContentException):
            await _pipeline(
                fake_storage, photo_repo, duplicate_check_enabled=True, duplicate_check_mode="block"
            ).handle(_request("2024/copy.jpg", b"same-bytes", content_type="image/jpeg"))
        assert len(fake_storage.create_calls) == 1

    async def test_different_content_is_not_duplicate(self, fake_storage, photo_repo) -> None:
        await self._seed(fake_storage, photo_repo)
        result = await _pipeline(
            fake_storage, photo_repo, duplicate_check_enabled=True, duplicate_check_mode="block"
        ).handle(_request("2024/other.jpg", b"other-bytes", content_type="image/jpeg"))
        assert result.key == "2024/other.jpg"

    async def test_skip_writes_when_recorded_object_is_gone(self, fake_storage, photo_repo) -> None:
        await self._seed(fake_storage, photo_repo)
        fake_storage.objects.pop("2023/original.jpg")
        result = await _pipeline(
            fake_storage, photo_repo, duplicate_check_enabled=True, duplicate_check_mode="skip"
        ).handle(_request("2024/copy.jpg", b"same-bytes", content_type="image/jpeg"))
        assert not result.skipped
        assert result.key == "2024/copy.jpg"
        assert result.duplicate_of is None
        assert "2024/copy.jpg" in fake_storage.objects
        assert "2024/copy.jpg" in photo_repo.records

    async def test_skip_writes_when_backend_cannot_confirm(self, fake_storage, photo_repo) -> None:
        await self._seed(fake_storage, photo_repo)

        async def unreachable(key):
            raise StorageDownloadError(key.value, "connection reset")

        fake_storage.meta = unreachable
        result = await _pipeline(
            fake_storage, photo_repo, duplicate_check_enabled=True, duplicate_check_mode="skip"
        ).handle(_request("2024/copy.jpg", b"same-bytes", content_type="image/jpeg"))
        assert not result.skipped
        assert "2024/copy.jpg" in fake_storage.objects


class TestRecordFailure:
    async def test_record_failure_keeps_committed_object(self, fake_storage) -> None:
        class BrokenRepo:
            async def find_key_by_fingerprint(self, fingerprint: str) -> str | None:
                return None

            async def record_upload(self, data):
                raise RuntimeError("database is locked")

        result = await _pipeline(fake_storage, BrokenRepo()).handle(
            _request("a.jpg", b"data", content_type="image/jpeg")
        )
        assert result.key == "a.jpg"
        assert "a.jpg" in fake_storage.objects


class TestKeyLocks:
    async def test_writes_hold_key_lock(self, fake_storage) -> None:
        locks = KeyLockRegistry()
        pipeline = _pipeline(fake_storage)
        pipeline.key_locks = locks
        await pipeline.handle(_request("a.jpg", b"data", content_type="image/jpeg"))
        assert len(locks) == 0
        assert fake_storage.create_calls == [("a.jpg", "image/jpeg")]
