"""Service interfaces (ports) for the application layer."""

from __future__ import annotations

from typing import Protocol


class IFingerprint(Protocol):
    """Incremental content fingerprint (one per upload)."""

    def update(self, chunk: bytes) -> None:
        """Feed the next chunk of payload."""

    def hexdigest(self) -> str:
        """Return the fingerprint of everything fed so far."""


class IFingerprinter(Protocol):
    """Factory for content fingerprints used by duplicate detection.

    Any stable content-derived identifier works; the default is SHA-256.
    """

    name: str

    def start(self) -> IFingerprint:
        """Begin a new fingerprint."""
