"""Application services: content type resolution, upload policy, fingerprints, key locks."""

from framestore.application.services.content_type_resolver import (
    EXTENSION_MIME_MAP,
    ContentTypeResolver,
)
from framestore.application.services.fingerprint_service import HashlibFingerprinter
from framestore.application.services.key_lock import KeyLockRegistry
from framestore.application.services.upload_policy import (
    PolicyDecision,
    UploadPolicy,
    parse_whitelist,
)

__all__ = [
    "EXTENSION_MIME_MAP",
    "ContentTypeResolver",
    "HashlibFingerprinter",
    "KeyLockRegistry",
    "PolicyDecision",
    "UploadPolicy",
    "parse_whitelist",
]
