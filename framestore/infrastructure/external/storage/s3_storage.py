"""S3-compatible object storage (AWS S3, Cloudflare R2, MinIO, etc.)."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator
from typing import Any, BinaryIO
from urllib.parse import quote, urlsplit

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from framestore.application.dtos.storage import StorageObjectMeta
from framestore.domain.value_objects import StorageKey
from framestore.infrastructure.exceptions import (
    StorageDeleteError,
    StorageDownloadError,
    StorageNotFoundError,
    StorageUploadError,
)
from framestore.shared.utils.datetime import ensure_utc

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class _UploadCancelled(Exception):
    """Raised inside the worker thread when the awaiting task was cancelled."""


def _is_not_found(error: ClientError) -> bool:
    return str(error.response.get("Error", {}).get("Code")) in _NOT_FOUND_CODES


def _normalize_prefix(prefix: str) -> str:
    prefix = prefix.strip("/")
    return f"{prefix}/" if prefix else ""


def _payload_size(data: BinaryIO) -> int:
    """Size of a seekable stream from its current position to the end; position is kept."""
    start = data.tell()
    data.seek(0, 2)
    end = data.tell()
    data.seek(start)
    return end - start


class S3StorageService:
    """S3-compatible storage.

    Uses boto3 (sync) via asyncio.to_thread for the async API. Keys are
    prefixed with a namespace prefix before transmission. Payloads up to
    multipart_threshold go in a single PUT; larger ones use multipart upload,
    which is aborted on failure or when the awaiting task is cancelled.
    """

    provider = "s3"
    CHUNK_SIZE = 64 * 1024  # 64KB

    def __init__(
        self,
        bucket: str,
        region: str = "auto",
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        prefix: str = "",
        cdn_url: str | None = None,
        force_path_style: bool = False,
        multipart_threshold: int = 16 * 1024 * 1024,
        multipart_chunk_size: int = 8 * 1024 * 1024,
        client: Any = None,
    ) -> None:
        """Initialize S3 client.

        Args:
            bucket: Bucket name.
            region: Region name ('auto' for R2).
            endpoint_url: Custom endpoint (R2/MinIO/Spaces); None for AWS.
            access_key: Optional; uses env/IAM if not set.
            secret_key: Optional.
            prefix: Namespace prefix prepended to every key.
            cdn_url: Public CDN base preferred by public_url().
            force_path_style: Path-style addressing instead of virtual-hosted.
            multipart_threshold: Payloads above this size use multipart upload.
            multipart_chunk_size: Part size for multipart upload (min 5MiB on S3).
            client: Prebuilt boto3 S3 client (tests).
        """
        self.bucket = bucket
        self.region = "us-east-1" if region == "auto" else region
        self.endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None
        self.prefix = _normalize_prefix(prefix)
        self.cdn_url = cdn_url.rstrip("/") if cdn_url else None
        self.force_path_style = force_path_style
        self.multipart_threshold = multipart_threshold
        self.multipart_chunk_size = multipart_chunk_size
        if client is not None:
            self._client = client
        else:
            extra = {} if self.endpoint_url is None else {"endpoint_url": self.endpoint_url}
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                config=Config(
                    s3={"addressing_style": "path" if force_path_style else "virtual"},
                ),
                **extra,
            )

    def _object_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _strip_prefix(self, object_key: str) -> str:
        return object_key[len(self.prefix):] if object_key.startswith(self.prefix) else object_key

    def _head_to_meta(self, key: str, head: dict[str, Any]) -> StorageObjectMeta:
        etag = head.get("ETag")
        return StorageObjectMeta(
            key=key,
            size=int(head.get("ContentLength", 0)),
            content_type=head.get("ContentType"),
            etag=etag.strip('"') if etag else None,
            last_modified=ensure_utc(head.get("LastModified")),
        )

    def _put_single(self, object_key: str, data: BinaryIO, content_type: str) -> None:
        self._client.put_object(
            Bucket=self.bucket,
            Key=object_key,
            Body=data.read(),
            ContentType=content_type,
        )

    def _put_multipart(
        self,
        object_key: str,
        data: BinaryIO,
        content_type: str,
        cancelled: threading.Event,
    ) -> None:
        upload = self._client.create_multipart_upload(
            Bucket=self.bucket,
            Key=object_key,
            ContentType=content_type,
        )
        upload_id = upload["UploadId"]
        parts: list[dict[str, Any]] = []
        try:
            part_number = 1
            while chunk := data.read(self.multipart_chunk_size):
                if cancelled.is_set():
                    raise _UploadCancelled(object_key)
                resp = self._client.upload_part(
                    Bucket=self.bucket,
                    Key=object_key,
                    UploadId=upload_id,
                    PartNumber=part_number,
                    Body=chunk,
                )
                parts.append({"ETag": resp["ETag"], "PartNumber": part_number})
                part_number += 1
            self._client.complete_multipart_upload(
                Bucket=self.bucket,
                Key=object_key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except BaseException:
            try:
                self._client.abort_multipart_upload(
                    Bucket=self.bucket,
                    Key=object_key,
                    UploadId=upload_id,
                )
            except (BotoCoreError, ClientError):
                logger.warning("Failed to abort multipart upload %s for %s", upload_id, object_key)
            raise

    async def create(
        self,
        key: StorageKey,
        data: BinaryIO,
        content_type: str,
    ) -> StorageObjectMeta:
        """PUT object (single or multipart). Overwrites; retrying with the same bytes is safe."""
        object_key = self._object_key(key.value)
        cancelled = threading.Event()

        def _upload() -> StorageObjectMeta:
            if _payload_size(data) > self.multipart_threshold:
                self._put_multipart(object_key, data, content_type, cancelled)
            else:
                self._put_single(object_key, data, content_type)
            head = self._client.head_object(Bucket=self.bucket, Key=object_key)
            return self._head_to_meta(key.value, head)

        try:
            return await asyncio.to_thread(_upload)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        except (BotoCoreError, ClientError, _UploadCancelled, OSError) as e:
            raise StorageUploadError(key.value, str(e)) from e

    async def read(self, key: StorageKey) -> AsyncIterator[bytes]:
        """Stream object content chunk by chunk."""
        object_key = self._object_key(key.value)
        try:
            resp = await asyncio.to_thread(
                self._client.get_object, Bucket=self.bucket, Key=object_key
            )
        except ClientError as e:
            if _is_not_found(e):
                raise StorageNotFoundError(key.value) from e
            raise StorageDownloadError(key.value, str(e)) from e
        except BotoCoreError as e:
            raise StorageDownloadError(key.value, str(e)) from e
        body = resp["Body"]
        try:
            while chunk := await asyncio.to_thread(body.read, self.CHUNK_SIZE):
                yield chunk
        except (BotoCoreError, OSError) as e:
            raise StorageDownloadError(key.value, str(e)) from e
        finally:
            body.close()

    async def delete(self, key: StorageKey) -> None:
        """Delete object. S3 DeleteObject is already idempotent for missing keys."""
        object_key = self._object_key(key.value)
        try:
            await asyncio.to_thread(
                self._client.delete_object, Bucket=self.bucket, Key=object_key
            )
        except ClientError as e:
            if _is_not_found(e):
                return
            raise StorageDeleteError(key.value, str(e)) from e
        except BotoCoreError as e:
            raise StorageDeleteError(key.value, str(e)) from e

    async def meta(self, key: StorageKey) -> StorageObjectMeta:
        """HeadObject -> size, content type, ETag, last modified."""
        object_key = self._object_key(key.value)
        try:
            head = await asyncio.to_thread(
                self._client.head_object, Bucket=self.bucket, Key=object_key
            )
        except ClientError as e:
            if _is_not_found(e):
                raise StorageNotFoundError(key.value) from e
            raise StorageDownloadError(key.value, str(e)) from e
        except BotoCoreError as e:
            raise StorageDownloadError(key.value, str(e)) from e
        return self._head_to_meta(key.value, head)

    def public_url(self, key: StorageKey) -> str:
        """CDN base if configured, else endpoint (path-style or bucket subdomain), else AWS host."""
        object_key = quote(self._object_key(key.value), safe="/")
        if self.cdn_url:
            return f"{self.cdn_url}/{object_key}"
        if self.endpoint_url:
            if self.force_path_style:
                return f"{self.endpoint_url}/{self.bucket}/{object_key}"
            parts = urlsplit(self.endpoint_url)
            return f"{parts.scheme}://{self.bucket}.{parts.netloc}/{object_key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{object_key}"

    async def list(self, prefix: str = "") -> AsyncIterator[StorageObjectMeta]:
        """Page through ListObjectsV2; keys are reported without the namespace prefix."""
        paginator = self._client.get_paginator("list_objects_v2")
        pages = iter(
            paginator.paginate(Bucket=self.bucket, Prefix=self._object_key(prefix))
        )
        while True:
            try:
                page = await asyncio.to_thread(next, pages, None)
            except (BotoCoreError, ClientError) as e:
                raise StorageDownloadError(prefix, str(e)) from e
            if page is None:
                return
            for item in page.get("Contents", []):
                etag = item.get("ETag")
                yield StorageObjectMeta(
                    key=self._strip_prefix(item["Key"]),
                    size=int(item.get("Size", 0)),
                    content_type=None,
                    etag=etag.strip('"') if etag else None,
                    last_modified=ensure_utc(item.get("LastModified")),
                )

    async def aclose(self) -> None:
        await asyncio.to_thread(self._client.close)
