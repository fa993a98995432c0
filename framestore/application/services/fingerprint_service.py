"""Content fingerprints for duplicate detection (hash algorithm is pluggable)."""

from __future__ import annotations

import hashlib

from framestore.application.interfaces.services import IFingerprint


class HashlibFingerprinter:
    """Fingerprinter backed by a hashlib algorithm (SHA-256 by default)."""

    def __init__(self, algorithm: str = "sha256") -> None:
        hashlib.new(algorithm)
        self.name = algorithm

    def start(self) -> IFingerprint:
        return hashlib.new(self.name)
