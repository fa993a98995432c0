"""Health check endpoints for liveness and readiness probes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from framestore.schemas.health import HealthResponse, ReadinessResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Storage backend not initialized"}},
)
def readiness_check(request: Request) -> ReadinessResponse | JSONResponse:
    """Return 200 with the active storage provider once the backend is up; else 503."""
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "storage_provider": None},
        )
    return ReadinessResponse(storage_provider=storage.provider)
