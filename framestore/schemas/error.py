"""Structured error body shared by every error response."""

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error body: machine code plus display copy."""

    error: str = Field(..., description="Machine-readable error code, e.g. PAYLOAD_TOO_LARGE")
    title: str
    message: str
    suggestion: str | None = None
    details: dict[str, Any] | None = None
