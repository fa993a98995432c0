"""Content type resolution for uploads.

Browsers other than Safari send HEIC/HEIF (and sometimes QuickTime) files as
application/octet-stream. When the declared type is specific it wins; only
the generic type falls back to a small, explicit extension table. This is
not content sniffing.
"""

from framestore.domain.value_objects import GENERIC_CONTENT_TYPE, StorageKey

EXTENSION_MIME_MAP: dict[str, str] = {
    ".heic": "image/heic",
    ".heif": "image/heif",
    ".mov": "video/quicktime",
    ".mp4": "video/mp4",
}


class ContentTypeResolver:
    """Resolve the effective content type of an upload (pure, no I/O)."""

    def __init__(self, extension_map: dict[str, str] | None = None) -> None:
        self.extension_map = dict(extension_map or EXTENSION_MIME_MAP)

    def resolve(self, key: StorageKey | str, declared_content_type: str | None) -> str:
        """Return declared type if specific, else the extension mapping, else the declared value."""
        declared = declared_content_type or GENERIC_CONTENT_TYPE
        if declared != GENERIC_CONTENT_TYPE:
            return declared
        if not isinstance(key, StorageKey):
            key = StorageKey.normalize(key)
        return self.extension_map.get(key.extension, declared)
