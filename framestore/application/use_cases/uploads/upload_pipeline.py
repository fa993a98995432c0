"""Upload pipeline: session -> key -> content type -> policy -> storage -> record."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import nullcontext
from tempfile import SpooledTemporaryFile
from typing import BinaryIO

from framestore.application.dtos.photo import PhotoCreate
from framestore.application.dtos.storage import StorageObjectMeta
from framestore.application.dtos.upload import UploadRequest, UploadResult
from framestore.application.interfaces.repositories import IPhotoRepository
from framestore.application.interfaces.services import IFingerprinter
from framestore.application.interfaces.storage import StorageProtocol
from framestore.application.services.content_type_resolver import ContentTypeResolver
from framestore.application.services.fingerprint_service import HashlibFingerprinter
from framestore.application.services.key_lock import KeyLockRegistry
from framestore.application.services.upload_policy import UploadPolicy
from framestore.domain.exceptions import (
    InvalidKeyException,
    MalformedBodyException,
    MissingKeyException,
    StorageWriteFailedException,
    UnauthorizedException,
)
from framestore.domain.value_objects import StorageKey
from framestore.infrastructure.exceptions import (
    StorageException,
    StorageInvalidKeyError,
    StorageNotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_SPOOL_MAX_MEMORY = 8 * 1024 * 1024


class UploadPipeline:
    """Handle one upload request end to end.

    The body is streamed into a spooled buffer (memory, then a temp file past
    spool_max_memory) while size and fingerprint are computed; the upload is
    aborted as soon as the running size passes the ceiling. Nothing reaches
    the backend until every policy check has passed.

    Same-key writes are not serialized unless key_locks is given; without it
    the backend's last-writer-wins semantics apply.
    """

    def __init__(
        self,
        storage: StorageProtocol,
        policy: UploadPolicy,
        resolver: ContentTypeResolver | None = None,
        fingerprinter: IFingerprinter | None = None,
        photo_repo: IPhotoRepository | None = None,
        key_locks: KeyLockRegistry | None = None,
        spool_max_memory: int = DEFAULT_SPOOL_MAX_MEMORY,
    ) -> None:
        self.storage = storage
        self.policy = policy
        self.resolver = resolver or ContentTypeResolver()
        self.fingerprinter = fingerprinter or HashlibFingerprinter()
        self.photo_repo = photo_repo
        self.key_locks = key_locks
        self.spool_max_memory = spool_max_memory

    @staticmethod
    def normalize_key(raw_key: str | None) -> StorageKey:
        """Strip leading slashes and validate; absent key -> MissingKey, bad key -> InvalidKey."""
        if not raw_key:
            raise MissingKeyException("key")
        try:
            return StorageKey.normalize(raw_key)
        except ValueError as e:
            raise InvalidKeyException(raw_key, str(e)) from e

    async def _receive(
        self,
        body: AsyncIterator[bytes],
        payload: BinaryIO,
    ) -> tuple[int, str]:
        """Spool body into payload; returns (size, fingerprint). Aborts early past the ceiling."""
        fingerprint = self.fingerprinter.start()
        size = 0
        async for chunk in body:
            if not chunk:
                continue
            size += len(chunk)
            decision = self.policy.check_size(size)
            if not decision.allowed and decision.error is not None:
                raise decision.error
            fingerprint.update(chunk)
            await asyncio.to_thread(payload.write, chunk)
        if size == 0:
            raise MalformedBodyException()
        return size, fingerprint.hexdigest()

    async def _still_stored(self, key: str) -> bool:
        """Whether a recorded duplicate still exists in the backend.

        A record can outlive its object (deleted directly in the backend, or
        a failed delete of the row); skipping against it would hand back a
        key that no longer resolves.
        """
        try:
            await self.storage.meta(StorageKey(key))
        except StorageNotFoundError:
            logger.warning("Recorded duplicate %s is gone from storage; writing anew", key)
            return False
        except StorageException as e:
            logger.warning("Could not confirm duplicate %s (%s); writing anew", key, e)
            return False
        return True

    async def _write(
        self,
        key: StorageKey,
        payload: BinaryIO,
        content_type: str,
    ) -> StorageObjectMeta:
        lock = self.key_locks.hold(key.value) if self.key_locks else nullcontext()
        try:
            async with lock:
                payload.seek(0)
                return await self.storage.create(key, payload, content_type)
        except StorageInvalidKeyError as e:
            raise InvalidKeyException(key.value, str(e.details.get("reason"))) from e
        except Exception as e:
            logger.exception("Storage provider create error for key: %s", key.value)
            raise StorageWriteFailedException() from e

    async def _record(
        self,
        key: StorageKey,
        fingerprint: str,
        content_type: str,
        size: int,
        user_id: str,
    ) -> None:
        if self.photo_repo is None:
            return
        try:
            await self.photo_repo.record_upload(
                PhotoCreate(
                    id=uuid.uuid4().hex,
                    storage_key=key.value,
                    fingerprint=fingerprint,
                    content_type=content_type,
                    file_size=size,
                    uploaded_by=user_id,
                )
            )
        except Exception:
            # The object is already committed; a missing record only weakens duplicate detection.
            logger.exception("Failed to record photo metadata for key: %s", key.value)

    async def handle(self, request: UploadRequest) -> UploadResult:
        """Validate, store and record one upload. Raises FramestoreException subclasses."""
        if request.acting_user is None:
            raise UnauthorizedException()
        key = self.normalize_key(request.key)
        content_type = self.resolver.resolve(key, request.declared_content_type)

        decision = self.policy.check_content_type(content_type)
        if not decision.allowed and decision.error is not None:
            logger.warning(
                "MIME type rejected: %s (declared: %s) for key: %s",
                content_type,
                request.declared_content_type,
                key.value,
            )
            raise decision.error

        with SpooledTemporaryFile(max_size=self.spool_max_memory) as payload:
            size, fingerprint = await self._receive(request.body, payload)
            decision = await self.policy.authorize(content_type, size, fingerprint)
            if not decision.allowed and decision.error is not None:
                logger.info(
                    "Upload rejected for key %s: %s", key.value, decision.error.error_code
                )
                raise decision.error
            duplicate_of = decision.duplicate_of
            if decision.skip_write and duplicate_of is not None:
                if not await self._still_stored(duplicate_of):
                    duplicate_of = None
            if decision.skip_write and duplicate_of is not None:
                logger.info(
                    "Duplicate upload for key %s skipped; existing key: %s",
                    key.value,
                    duplicate_of,
                )
                return UploadResult(
                    key=duplicate_of,
                    content_type=content_type,
                    size=size,
                    fingerprint=fingerprint,
                    skipped=True,
                    duplicate_of=duplicate_of,
                )
            meta = await self._write(key, payload, content_type)

        await self._record(key, fingerprint, content_type, size, request.acting_user.id)
        logger.info(
            "Stored %s (%d bytes, %s) via %s",
            key.value,
            meta.size,
            content_type,
            getattr(self.storage, "provider", "storage"),
        )
        return UploadResult(
            key=key.value,
            content_type=content_type,
            size=size,
            fingerprint=fingerprint,
            duplicate_of=duplicate_of,
            warning=decision.warning,
        )
