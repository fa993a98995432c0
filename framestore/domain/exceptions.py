"""Domain exceptions for framestore.

Every upload error kind is a subclass of FramestoreException with a fixed
error code. The presentation layer maps codes to HTTP statuses in
core.exception_handlers; rendering of localized copy happens elsewhere, so
each kind only carries a default English title, message and suggestion.
"""

from typing import Any


class FramestoreException(Exception):
    """Base exception for all framestore errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (safe to return to the client).
        title: Short headline for the error body.
        suggestion: Optional hint on how the client can recover.
    """

    title: str = "Request failed"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        suggestion: str | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
            suggestion: Optional recovery hint.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.suggestion = suggestion
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the structured error body ({error, title, message, suggestion?, details?})."""
        body: dict[str, Any] = {
            "error": self.error_code,
            "title": self.title,
            "message": self.message,
        }
        if self.suggestion:
            body["suggestion"] = self.suggestion
        if self.details:
            body["details"] = self.details
        return body


class UnauthorizedException(FramestoreException):
    """No valid authenticated session."""

    title = "Unauthorized"

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            message,
            "UNAUTHORIZED",
            suggestion="Sign in again and retry the upload.",
        )


class MissingKeyException(FramestoreException):
    """Upload request without a key."""

    title = "Missing required field"

    def __init__(self, field: str = "key") -> None:
        super().__init__(
            f"The '{field}' parameter is required",
            "MISSING_KEY",
            {"field": field},
        )


class InvalidKeyException(FramestoreException):
    """Key fails normalization or escapes the storage root."""

    title = "Invalid key"

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(
            f"Invalid storage key: {reason}",
            "INVALID_KEY",
            {"key": key, "reason": reason},
        )


class MalformedBodyException(FramestoreException):
    """Upload body is missing or unreadable."""

    title = "Upload failed"

    def __init__(self, message: str = "Request body is empty or unreadable") -> None:
        super().__init__(message, "MALFORMED_BODY")


class UnsupportedMediaTypeException(FramestoreException):
    """Content type is not on the configured whitelist."""

    title = "Unsupported file type"

    def __init__(self, content_type: str, allowed: list[str]) -> None:
        super().__init__(
            f"Files of type '{content_type}' are not accepted",
            "UNSUPPORTED_MEDIA_TYPE",
            {"content_type": content_type, "allowed": allowed},
            suggestion=f"Allowed types: {', '.join(allowed)}",
        )
        self.content_type = content_type
        self.allowed = allowed


class PayloadTooLargeException(FramestoreException):
    """Payload exceeds the configured size ceiling."""

    title = "File too large"

    def __init__(self, size: int, max_size: int) -> None:
        size_mb = size / 1024 / 1024
        max_mb = max_size / 1024 / 1024
        super().__init__(
            f"File size {size_mb:.2f}MB exceeds the limit",
            "PAYLOAD_TOO_LARGE",
            {"size": size, "max_size": max_size},
            suggestion=f"Upload a file no larger than {max_mb:g}MB.",
        )
        self.size = size
        self.max_size = max_size


class DuplicateContentException(FramestoreException):
    """Identical content is already stored (block mode)."""

    title = "Duplicate file"

    def __init__(self, existing_key: str) -> None:
        super().__init__(
            "An identical file has already been uploaded",
            "DUPLICATE_CONTENT",
            {"existing_key": existing_key},
        )
        self.existing_key = existing_key


class StorageWriteFailedException(FramestoreException):
    """Backend write failed. Carries no backend detail; the cause is logged."""

    title = "Upload failed"

    def __init__(self) -> None:
        super().__init__(
            "The file could not be stored. Please try again later.",
            "STORAGE_WRITE_FAILED",
        )


class StorageConfigurationError(FramestoreException):
    """Selected storage provider is missing required configuration (process-fatal)."""

    title = "Storage misconfigured"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(
            message,
            "STORAGE_CONFIGURATION_ERROR",
            {"provider": provider},
        )
