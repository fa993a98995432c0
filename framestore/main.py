"""FastAPI application entry point.

Wiring only: lifespan, exception handlers, middleware, routers.
See framestore.core.lifespan and framestore.core.exception_handlers.

Settings are loaded inside create_app() so that tests can set env (and
clear the get_settings cache) before calling create_app().
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from framestore.api.delivery import create_delivery_router
from framestore.api.v1 import api_router
from framestore.core.config import get_settings
from framestore.core.exception_handlers import register_exception_handlers
from framestore.core.lifespan import create_lifespan
from framestore.core.limiter import limiter
from framestore.domain.enums import StorageProvider
from framestore.middleware import RequestIDMiddleware


def create_app() -> FastAPI:
    """Build and return the FastAPI application. Settings are resolved here (deferred from import)."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=create_lifespan,
    )

    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_exception_handlers(app)

    # Middleware: last added = outermost. Request ID wraps CORS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware, header_name=settings.request_id_header)

    app.include_router(api_router, prefix="/api/v1")

    if settings.storage_provider == StorageProvider.LOCAL and settings.local_base_url.startswith("/"):
        app.include_router(
            create_delivery_router(settings.local_base_url, settings.local_prefix)
        )

    return app


app = create_app()
