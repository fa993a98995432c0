"""Local filesystem storage with path validation and atomic writes."""

from __future__ import annotations

import asyncio
import hashlib
import json
import os
import tempfile
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any, BinaryIO, cast
from urllib.parse import quote

import aiofiles
import aiofiles.os

from framestore.application.dtos.storage import StorageObjectMeta
from framestore.domain.value_objects import StorageKey
from framestore.infrastructure.exceptions import (
    StorageDeleteError,
    StorageDownloadError,
    StorageInvalidKeyError,
    StorageNotFoundError,
    StorageUploadError,
)
from framestore.shared.utils.datetime import from_timestamp_utc

META_SUFFIX = ".meta.json"
TEMP_PREFIX = ".tmp_"


def _normalize_prefix(prefix: str) -> str:
    """'photos' / '/photos/' -> 'photos/'; '' stays ''."""
    prefix = prefix.strip("/")
    return f"{prefix}/" if prefix else ""


class LocalStorageService:
    """Local filesystem storage with atomic writes and path traversal protection.

    Objects live at storage_root/prefix/key. Paths are validated against
    storage_root regardless of upstream normalization. Writes use temp file +
    rename, so readers never see a partial object and a cancelled write
    leaves the previous object (if any) in place. Content type and SHA-256
    are kept in a .meta.json sidecar.
    """

    provider = "local"
    CHUNK_SIZE = 64 * 1024  # 64KB

    def __init__(
        self,
        storage_root: str,
        base_url: str = "/storage",
        prefix: str = "",
    ) -> None:
        """Initialize local storage.

        Args:
            storage_root: Base directory for all files.
            base_url: Public base path or URL the root is served under.
            prefix: Namespace prepended to every key inside the root.
        """
        self.storage_root = Path(storage_root).resolve()
        self.base_url = base_url.rstrip("/")
        self.prefix = _normalize_prefix(prefix)
        self.storage_root.mkdir(parents=True, exist_ok=True, mode=0o750)

    def _relative(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _get_full_path(self, key: str) -> Path:
        """Resolve and validate path under storage_root. Raises StorageInvalidKeyError on traversal."""
        full_path = (self.storage_root / self._relative(key)).resolve()
        try:
            full_path.relative_to(self.storage_root)
        except ValueError as e:
            raise StorageInvalidKeyError(key) from e
        if full_path == self.storage_root:
            raise StorageInvalidKeyError(key, "key resolves to storage root")
        return full_path

    @staticmethod
    def _meta_path(file_path: Path) -> Path:
        return file_path.with_name(file_path.name + META_SUFFIX)

    async def _write_metadata(self, file_path: Path, metadata: dict[str, Any]) -> None:
        """Write JSON sidecar."""
        meta_path = self._meta_path(file_path)
        async with aiofiles.open(meta_path, "w") as f:
            await f.write(json.dumps(metadata, indent=2))
        os.chmod(meta_path, 0o640)

    async def _read_metadata(self, file_path: Path) -> dict[str, Any]:
        """Read JSON sidecar or empty dict."""
        meta_path = self._meta_path(file_path)
        if not meta_path.exists():
            return {}
        async with aiofiles.open(meta_path, "r") as f:
            content = await f.read()
        try:
            result = json.loads(content)
        except json.JSONDecodeError:
            return {}
        return cast(dict[str, Any], result) if isinstance(result, dict) else {}

    def _build_meta(self, key: str, file_path: Path, stored: dict[str, Any]) -> StorageObjectMeta:
        stat = file_path.stat()
        return StorageObjectMeta(
            key=key,
            size=stat.st_size,
            content_type=stored.get("content_type"),
            etag=stored.get("sha256"),
            last_modified=from_timestamp_utc(stat.st_mtime),
        )

    async def create(
        self,
        key: StorageKey,
        data: BinaryIO,
        content_type: str,
    ) -> StorageObjectMeta:
        """Write data under key with atomic rename. Overwrites an existing object."""
        target_path = self._get_full_path(key.value)
        temp_path: str | None = None
        try:
            target_path.parent.mkdir(parents=True, exist_ok=True, mode=0o750)
            temp_fd, temp_path = tempfile.mkstemp(
                dir=target_path.parent,
                prefix=TEMP_PREFIX,
                suffix=target_path.suffix,
            )
            os.close(temp_fd)
            sha256 = hashlib.sha256()
            size = 0
            async with aiofiles.open(temp_path, "wb") as f:
                while chunk := await asyncio.to_thread(data.read, self.CHUNK_SIZE):
                    sha256.update(chunk)
                    size += len(chunk)
                    await f.write(chunk)
            os.chmod(temp_path, 0o640)
            os.replace(temp_path, target_path)
            temp_path = None
            stored = {
                "key": key.value,
                "sha256": sha256.hexdigest(),
                "size": size,
                "content_type": content_type,
            }
            await self._write_metadata(target_path, stored)
            return self._build_meta(key.value, target_path, stored)
        except OSError as e:
            raise StorageUploadError(key.value, str(e)) from e
        finally:
            if temp_path is not None and os.path.exists(temp_path):
                os.unlink(temp_path)

    async def read(self, key: StorageKey) -> AsyncIterator[bytes]:
        """Stream file content."""
        file_path = self._get_full_path(key.value)
        if not file_path.is_file():
            raise StorageNotFoundError(key.value)
        try:
            async with aiofiles.open(file_path, "rb") as f:
                while chunk := await f.read(self.CHUNK_SIZE):
                    yield chunk
        except OSError as e:
            raise StorageDownloadError(key.value, str(e)) from e

    async def delete(self, key: StorageKey) -> None:
        """Delete file, sidecar, and now-empty parent directories. Missing key is a no-op."""
        file_path = self._get_full_path(key.value)
        try:
            if file_path.is_file():
                await aiofiles.os.remove(file_path)
            meta_path = self._meta_path(file_path)
            if meta_path.exists():
                await aiofiles.os.remove(meta_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageDeleteError(key.value, str(e)) from e
        parent = file_path.parent
        while parent != self.storage_root and self.storage_root in parent.parents:
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent

    async def meta(self, key: StorageKey) -> StorageObjectMeta:
        """Return size, content type, SHA-256 and mtime."""
        file_path = self._get_full_path(key.value)
        if not file_path.is_file():
            raise StorageNotFoundError(key.value)
        stored = await self._read_metadata(file_path)
        try:
            return self._build_meta(key.value, file_path, stored)
        except FileNotFoundError as e:
            raise StorageNotFoundError(key.value) from e

    def public_url(self, key: StorageKey) -> str:
        """Configured base path joined with the prefixed key."""
        return f"{self.base_url}/{quote(self._relative(key.value), safe='/')}"

    def _walk_root(self, prefix: str) -> tuple[Path, Path]:
        """Blocking: (namespace root, directory to start walking) for prefix."""
        namespace_root = (self.storage_root / self.prefix).resolve()
        directory, _, _ = prefix.rpartition("/")
        start = (namespace_root / directory).resolve()
        try:
            start.relative_to(namespace_root)
        except ValueError as e:
            raise StorageInvalidKeyError(prefix, "prefix escapes storage root") from e
        return namespace_root, start

    def _matches(
        self, namespace_root: Path, dirpath: str, filenames: list[str], prefix: str
    ) -> list[tuple[str, Path]]:
        found: list[tuple[str, Path]] = []
        for name in sorted(filenames):
            if name.endswith(META_SUFFIX) or name.startswith(TEMP_PREFIX):
                continue
            path = Path(dirpath) / name
            key = path.relative_to(namespace_root).as_posix()
            if key.startswith(prefix):
                found.append((key, path))
        return found

    async def list(self, prefix: str = "") -> AsyncIterator[StorageObjectMeta]:
        """Yield metadata for stored objects under prefix (sidecars and temp files skipped).

        The tree is walked one directory per worker-thread hop, so objects
        are yielded as their directory is reached rather than after a full scan.
        """
        namespace_root, start = await asyncio.to_thread(self._walk_root, prefix)
        walker = os.walk(start)
        while True:
            step = await asyncio.to_thread(next, walker, None)
            if step is None:
                return
            dirpath, dirnames, filenames = step
            # os.walk descends into dirnames after this step; sort in place for key order.
            dirnames.sort()
            for key, path in self._matches(namespace_root, dirpath, filenames, prefix):
                try:
                    stored = await self._read_metadata(path)
                    yield self._build_meta(key, path, stored)
                except FileNotFoundError:
                    # Deleted between walk and stat.
                    continue

    async def aclose(self) -> None:
        return None
