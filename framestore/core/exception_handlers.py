"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Maps domain and storage
exceptions to HTTP responses using the structured error body
({error, title, message, suggestion?, details?}).
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from framestore.core.config import get_settings
from framestore.domain.exceptions import FramestoreException

logger = logging.getLogger(__name__)

# Map error_code to HTTP status; unlisted storage codes fall through to 500
_ERROR_CODE_STATUS: dict[str, int] = {
    "UNAUTHORIZED": 401,
    "MISSING_KEY": 400,
    "INVALID_KEY": 400,
    "MALFORMED_BODY": 400,
    "UNSUPPORTED_MEDIA_TYPE": 415,
    "PAYLOAD_TOO_LARGE": 413,
    "DUPLICATE_CONTENT": 409,
    "STORAGE_NOT_FOUND": 404,
    "STORAGE_WRITE_FAILED": 500,
}


def _framestore_exception_handler(
    request: Request, exc: FramestoreException
) -> JSONResponse:
    """Return JSON from FramestoreException.to_dict(); 5xx bodies never carry details."""
    status = _ERROR_CODE_STATUS.get(exc.error_code, 500)
    content = exc.to_dict()
    if status >= 500:
        logger.error("Request failed with %s: %s", exc.error_code, exc.message)
        content.pop("details", None)
    return JSONResponse(status_code=status, content=content)


def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 422 with validation error details."""
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "title": "Invalid request",
            "message": "Request validation failed",
            "details": {"errors": exc.errors()},
        },
    )


def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Return JSON for Starlette HTTP exceptions (status + detail)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTP_ERROR", "title": "Request failed", "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only when debug is True."""
    logger.exception("Unhandled exception: %s", exc)
    settings = get_settings()
    detail: Any = str(exc) if settings.debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "title": "Server error", "message": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app.

    Handlers: FramestoreException (and subclasses, including storage errors),
    RequestValidationError, StarletteHTTPException, generic Exception.
    """
    app.add_exception_handler(FramestoreException, _framestore_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
