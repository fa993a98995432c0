"""Remote file-manager storage (OpenList / AList-style HTTP API).

Every operation is one or more HTTP calls against the configured API using a
static token. The API answers with an envelope {"code", "message", "data"};
code 200 is success. Envelope failures are mapped into the storage
exception taxonomy here so callers never see HTTP or envelope details.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import posixpath
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, BinaryIO
from urllib.parse import quote, urljoin, urlsplit

import httpx

from framestore.application.dtos.storage import StorageObjectMeta
from framestore.domain.value_objects import StorageKey
from framestore.infrastructure.exceptions import (
    StorageDeleteError,
    StorageDownloadError,
    StorageException,
    StorageInvalidKeyError,
    StorageNotFoundError,
    StorageUploadError,
)
from framestore.shared.utils.datetime import parse_iso_utc, utc_now

logger = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_ENDPOINT = "/d"
LIST_PAGE_SIZE = 100


@dataclass(frozen=True)
class OpenListEndpoints:
    """Relative API paths for each storage operation."""

    upload: str = "/api/fs/put"
    download: str = ""
    list: str = "/api/fs/list"
    delete: str = "/api/fs/remove"
    meta: str = "/api/fs/get"


def _hash_from(data: dict[str, Any]) -> str | None:
    hash_info = data.get("hash_info") or data.get("hashinfo")
    if isinstance(hash_info, dict):
        for algo in ("sha256", "sha1", "md5"):
            if hash_info.get(algo):
                return str(hash_info[algo])
    return None


class OpenListStorageService:
    """Storage backed by a remote file manager's HTTP API.

    Objects live at root_path/key on the remote side. The remote path is sent
    in the JSON field named path_field (meta, list) or the File-Path header
    (upload), as the API expects.
    """

    provider = "openlist"
    CHUNK_SIZE = 64 * 1024  # 64KB

    def __init__(
        self,
        base_url: str,
        token: str,
        root_path: str = "",
        endpoints: OpenListEndpoints | None = None,
        path_field: str = "path",
        cdn_url: str | None = None,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
        public_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the remote API client.

        Args:
            base_url: API base URL (e.g. https://files.example.com).
            token: Static token sent in the Authorization header.
            root_path: Remote directory under which all keys live.
            endpoints: Endpoint map; defaults match the OpenList API.
            path_field: JSON field carrying the remote path in request payloads.
            cdn_url: Public CDN base preferred by public_url().
            timeout: Per-request timeout in seconds.
            client: Prebuilt httpx.AsyncClient (tests); must carry base_url and auth.
            public_client: Client without credentials for downloads served by
                another host (a raw_url on a storage backend or CDN).
        """
        self.base_url = base_url.rstrip("/")
        self.root_path = "/" + root_path.strip("/") if root_path.strip("/") else ""
        self.endpoints = endpoints or OpenListEndpoints()
        self.path_field = path_field
        self.cdn_url = cdn_url.rstrip("/") if cdn_url else None
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": token},
            timeout=timeout,
        )
        self._timeout = timeout
        self._owns_public_client = public_client is None
        self._public_client = public_client

    def _remote_path(self, key: str) -> str:
        return f"{self.root_path}/{key}" if key else (self.root_path or "/")

    def _key_from_remote(self, remote_path: str) -> str:
        return remote_path[len(self.root_path):].lstrip("/")

    async def _call(
        self,
        endpoint: str,
        payload: dict[str, Any],
        key: str,
        error_cls: type[StorageException],
    ) -> Any:
        """POST JSON to endpoint and unwrap the envelope; returns envelope data."""
        try:
            resp = await self._client.post(endpoint, json=payload)
        except httpx.HTTPError as e:
            raise error_cls(key, str(e)) from e
        return self._unwrap(resp, key, error_cls)

    def _unwrap(
        self,
        resp: httpx.Response,
        key: str,
        error_cls: type[StorageException],
    ) -> Any:
        if resp.status_code == 404:
            raise StorageNotFoundError(key)
        try:
            envelope = resp.json()
        except ValueError as e:
            raise error_cls(key, f"HTTP {resp.status_code}: non-JSON response") from e
        if not isinstance(envelope, dict):
            raise error_cls(key, f"HTTP {resp.status_code}: unexpected response shape")
        code = envelope.get("code")
        message = str(envelope.get("message") or "")
        if code == 200 and resp.is_success:
            return envelope.get("data")
        if code == 404 or "not found" in message.lower():
            raise StorageNotFoundError(key)
        raise error_cls(key, f"code={code} message={message}")

    async def create(
        self,
        key: StorageKey,
        data: BinaryIO,
        content_type: str,
    ) -> StorageObjectMeta:
        """Stream data to the upload endpoint. The remote overwrites an existing file."""
        remote_path = self._remote_path(key.value)
        sha256 = hashlib.sha256()
        size = 0

        async def _body() -> AsyncIterator[bytes]:
            nonlocal size
            while chunk := await asyncio.to_thread(data.read, self.CHUNK_SIZE):
                sha256.update(chunk)
                size += len(chunk)
                yield chunk

        headers = {
            "File-Path": quote(remote_path, safe="/"),
            "Content-Type": content_type,
            "As-Task": "false",
        }
        try:
            resp = await self._client.put(
                self.endpoints.upload, content=_body(), headers=headers
            )
        except httpx.HTTPError as e:
            raise StorageUploadError(key.value, str(e)) from e
        try:
            self._unwrap(resp, key.value, StorageUploadError)
        except StorageNotFoundError as e:
            # Not-found on upload means the remote root is missing.
            raise StorageUploadError(key.value, "remote path not found") from e
        return StorageObjectMeta(
            key=key.value,
            size=size,
            content_type=content_type,
            etag=sha256.hexdigest(),
            last_modified=utc_now(),
        )

    async def _download_url(self, key: StorageKey) -> str:
        remote_path = quote(self._remote_path(key.value), safe="/")
        if self.endpoints.download:
            return f"{self.endpoints.download.rstrip('/')}{remote_path}"
        data = await self._call(
            self.endpoints.meta,
            {self.path_field: self._remote_path(key.value), "password": ""},
            key.value,
            StorageDownloadError,
        )
        raw_url = (data or {}).get("raw_url")
        if raw_url:
            return str(raw_url)
        return f"{DEFAULT_DOWNLOAD_ENDPOINT}{remote_path}"

    def _same_origin(self, url: str) -> bool:
        target = urlsplit(urljoin(self.base_url + "/", url))
        origin = urlsplit(self.base_url)
        return (target.scheme, target.netloc) == (origin.scheme, origin.netloc)

    def _client_for(self, url: str) -> httpx.AsyncClient:
        """The API client for URLs on the API host; a credential-free client otherwise."""
        if self._same_origin(url):
            return self._client
        if self._public_client is None:
            self._public_client = httpx.AsyncClient(timeout=self._timeout)
        return self._public_client

    async def read(self, key: StorageKey) -> AsyncIterator[bytes]:
        """Stream file content from the download endpoint (or the remote raw_url).

        The API token is only sent to the API host itself; a raw_url pointing
        elsewhere is fetched without it.
        """
        url = await self._download_url(key)
        client = self._client_for(url)
        try:
            async with client.stream("GET", url, follow_redirects=True) as resp:
                if resp.status_code == 404:
                    raise StorageNotFoundError(key.value)
                if not resp.is_success:
                    raise StorageDownloadError(key.value, f"HTTP {resp.status_code}")
                async for chunk in resp.aiter_bytes(self.CHUNK_SIZE):
                    yield chunk
        except httpx.HTTPError as e:
            raise StorageDownloadError(key.value, str(e)) from e

    async def delete(self, key: StorageKey) -> None:
        """Remove the remote file. A missing file is not an error."""
        directory, name = posixpath.split(self._remote_path(key.value))
        try:
            await self._call(
                self.endpoints.delete,
                {"dir": directory or "/", "names": [name]},
                key.value,
                StorageDeleteError,
            )
        except StorageNotFoundError:
            logger.debug("Delete of missing remote object %s ignored", key.value)

    def _entry_to_meta(self, key: str, entry: dict[str, Any]) -> StorageObjectMeta:
        return StorageObjectMeta(
            key=key,
            size=int(entry.get("size") or 0),
            content_type=None,
            etag=_hash_from(entry),
            last_modified=parse_iso_utc(entry.get("modified")),
        )

    async def meta(self, key: StorageKey) -> StorageObjectMeta:
        """Fetch remote file info. A directory at key counts as not found."""
        data = await self._call(
            self.endpoints.meta,
            {self.path_field: self._remote_path(key.value), "password": ""},
            key.value,
            StorageDownloadError,
        )
        if not isinstance(data, dict) or data.get("is_dir"):
            raise StorageNotFoundError(key.value)
        return self._entry_to_meta(key.value, data)

    def public_url(self, key: StorageKey) -> str:
        """CDN base + key if configured, else API base + download endpoint + remote path."""
        if self.cdn_url:
            return f"{self.cdn_url}/{quote(key.value, safe='/')}"
        download = (self.endpoints.download or DEFAULT_DOWNLOAD_ENDPOINT).rstrip("/")
        return f"{self.base_url}{download}{quote(self._remote_path(key.value), safe='/')}"

    async def _list_dir(self, remote_dir: str) -> AsyncIterator[dict[str, Any]]:
        page = 1
        seen = 0
        while True:
            data = await self._call(
                self.endpoints.list,
                {
                    self.path_field: remote_dir,
                    "password": "",
                    "page": page,
                    "per_page": LIST_PAGE_SIZE,
                    "refresh": False,
                },
                remote_dir,
                StorageDownloadError,
            )
            content = (data or {}).get("content") or []
            for entry in content:
                yield entry
            seen += len(content)
            total = int((data or {}).get("total") or 0)
            if not content or seen >= total:
                return
            page += 1

    async def list(self, prefix: str = "") -> AsyncIterator[StorageObjectMeta]:
        """Walk remote directories breadth-first, yielding files whose key starts with prefix."""
        if ".." in prefix.split("/"):
            raise StorageInvalidKeyError(prefix, "prefix escapes storage root")
        directory = prefix.rpartition("/")[0]
        pending = [self._remote_path(directory)]
        while pending:
            remote_dir = pending.pop(0)
            try:
                entries = self._list_dir(remote_dir)
                async for entry in entries:
                    remote_path = posixpath.join(remote_dir, str(entry.get("name", "")))
                    key = self._key_from_remote(remote_path)
                    if entry.get("is_dir"):
                        if key.startswith(prefix) or prefix.startswith(key + "/"):
                            pending.append(remote_path)
                        continue
                    if key.startswith(prefix):
                        yield self._entry_to_meta(key, entry)
            except StorageNotFoundError:
                continue

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
        if self._owns_public_client and self._public_client is not None:
            await self._public_client.aclose()
