"""Upload policy: MIME whitelist, size ceiling, duplicate-content rules.

Checks run in a fixed order (whitelist -> size -> duplicate) and stop at the
first rejection, so config-only checks run before any fingerprint lookup.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING

from framestore.domain.enums import DuplicateCheckMode
from framestore.domain.exceptions import (
    DuplicateContentException,
    FramestoreException,
    PayloadTooLargeException,
    UnsupportedMediaTypeException,
)

if TYPE_CHECKING:
    from framestore.core.config import Settings

logger = logging.getLogger(__name__)

DuplicateLookup = Callable[[str], Awaitable[str | None]]


@lru_cache(maxsize=32)
def parse_whitelist(raw: str) -> tuple[str, ...]:
    """Split a comma-separated allow-list; blanks dropped, order kept."""
    return tuple(t.strip() for t in raw.split(",") if t.strip())


@dataclass(frozen=True)
class PolicyDecision:
    """Allow (possibly short-circuit or with advisory) or Reject(error)."""

    allowed: bool
    error: FramestoreException | None = None
    duplicate_of: str | None = None
    skip_write: bool = False
    warning: str | None = None

    @classmethod
    def allow(cls) -> "PolicyDecision":
        return cls(allowed=True)

    @classmethod
    def reject(cls, error: FramestoreException) -> "PolicyDecision":
        return cls(allowed=False, error=error)


class UploadPolicy:
    """Stateless upload gate given its configuration.

    duplicate_lookup is the metadata store's existence check
    (fingerprint -> existing key or None); the policy never owns that state.
    """

    def __init__(
        self,
        *,
        whitelist_enabled: bool,
        whitelist: str,
        max_upload_size: int,
        duplicate_check_enabled: bool = False,
        duplicate_check_mode: DuplicateCheckMode | str = DuplicateCheckMode.SKIP,
        duplicate_lookup: DuplicateLookup | None = None,
    ) -> None:
        self.whitelist_enabled = whitelist_enabled
        self.allowed_types = parse_whitelist(whitelist)
        self.max_upload_size = max_upload_size
        self.duplicate_check_enabled = duplicate_check_enabled
        self.duplicate_check_mode = DuplicateCheckMode(duplicate_check_mode)
        self.duplicate_lookup = duplicate_lookup

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        duplicate_lookup: DuplicateLookup | None = None,
    ) -> "UploadPolicy":
        return cls(
            whitelist_enabled=settings.upload_mime_whitelist_enabled,
            whitelist=settings.upload_mime_whitelist,
            max_upload_size=settings.max_upload_size,
            duplicate_check_enabled=settings.upload_duplicate_check_enabled,
            duplicate_check_mode=settings.upload_duplicate_check_mode,
            duplicate_lookup=duplicate_lookup,
        )

    def check_content_type(self, content_type: str) -> PolicyDecision:
        """Whitelist gate. An empty allow-list or disabled enforcement accepts everything."""
        if not self.whitelist_enabled or not self.allowed_types:
            return PolicyDecision.allow()
        if content_type not in self.allowed_types:
            return PolicyDecision.reject(
                UnsupportedMediaTypeException(content_type, list(self.allowed_types))
            )
        return PolicyDecision.allow()

    def check_size(self, payload_size: int) -> PolicyDecision:
        """Size gate; also used on the running total while the body streams in."""
        if payload_size > self.max_upload_size:
            return PolicyDecision.reject(
                PayloadTooLargeException(payload_size, self.max_upload_size)
            )
        return PolicyDecision.allow()

    async def check_duplicate(self, fingerprint: str | None) -> PolicyDecision:
        """Duplicate gate. Needs both a fingerprint and a lookup to do anything."""
        if (
            not self.duplicate_check_enabled
            or fingerprint is None
            or self.duplicate_lookup is None
        ):
            return PolicyDecision.allow()
        existing = await self.duplicate_lookup(fingerprint)
        if existing is None:
            return PolicyDecision.allow()
        mode = self.duplicate_check_mode
        if mode is DuplicateCheckMode.BLOCK:
            return PolicyDecision.reject(DuplicateContentException(existing))
        if mode is DuplicateCheckMode.SKIP:
            return PolicyDecision(allowed=True, duplicate_of=existing, skip_write=True)
        return PolicyDecision(
            allowed=True,
            duplicate_of=existing,
            warning=f"Identical content already stored at '{existing}'",
        )

    async def authorize(
        self,
        content_type: str,
        payload_size: int,
        fingerprint: str | None = None,
    ) -> PolicyDecision:
        """Run whitelist -> size -> duplicate; first rejection wins."""
        decision = self.check_content_type(content_type)
        if not decision.allowed:
            return decision
        decision = self.check_size(payload_size)
        if not decision.allowed:
            return decision
        return await self.check_duplicate(fingerprint)
