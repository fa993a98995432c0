"""DTOs for the acting user (session boundary)."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SessionUser:
    """Authenticated user resolved from a verified session token."""

    id: str
    email: str | None = None
