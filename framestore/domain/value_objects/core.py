"""Domain value objects for framestore.

Value objects are immutable types that represent domain concepts with
self-validation. They have no identity, only value.
"""

from dataclasses import dataclass

GENERIC_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class StorageKey:
    """Normalized, slash-separated relative path identifying a stored object.

    Invariants: non-empty, no leading slash, no '..' segment, no NUL byte.
    Backends only ever receive StorageKey values, never raw client input.
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("Storage key must be a non-empty string")
        if self.value.startswith("/"):
            raise ValueError("Storage key must not start with '/'")
        if "\x00" in self.value:
            raise ValueError("Storage key must not contain NUL bytes")
        if ".." in self.value.split("/"):
            raise ValueError("Storage key must not contain '..' segments")

    @classmethod
    def normalize(cls, raw: str) -> "StorageKey":
        """Strip leading slashes and validate. Other segments are left untouched."""
        return cls(raw.lstrip("/"))

    @property
    def extension(self) -> str:
        """Lowercase last dot-segment of the final path component, with the dot ('' if none)."""
        name = self.value.rsplit("/", 1)[-1]
        if "." not in name:
            return ""
        return "." + name.rsplit(".", 1)[-1].lower()

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ContentType:
    """Normalized MIME type ('type/subtype', lowercase, no parameters)."""

    value: str

    def __post_init__(self) -> None:
        main, sep, sub = self.value.partition("/")
        if not sep or not main or not sub:
            raise ValueError(f"Content type must be 'type/subtype', got {self.value!r}")

    @classmethod
    def parse(cls, header: str | None) -> "ContentType":
        """Parse a Content-Type header value; missing or malformed falls back to the generic type."""
        if not header:
            return cls(GENERIC_CONTENT_TYPE)
        bare = header.split(";", 1)[0].strip().lower()
        try:
            return cls(bare)
        except ValueError:
            return cls(GENERIC_CONTENT_TYPE)

    @property
    def is_generic(self) -> bool:
        return self.value == GENERIC_CONTENT_TYPE

    def __str__(self) -> str:
        return self.value
