"""Application lifespan: startup and shutdown.

Builds the single storage backend for the process (a misconfigured
provider fails startup), creates the photo table, and releases both on
shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from framestore.application.services.key_lock import KeyLockRegistry
from framestore.core.config import get_settings
from framestore.infrastructure.external.storage.factory import StorageFactory
from framestore.infrastructure.persistence.database import dispose_engine, init_models
from framestore.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: logging, storage backend, key locks, database schema.
    Shutdown order: storage backend close, SQL engine dispose.
    """
    settings = get_settings()
    setup_logging()

    # ---- Startup ----
    app.state.storage = StorageFactory.create_storage_service(settings)
    app.state.key_locks = KeyLockRegistry() if settings.upload_serialize_same_key else None
    await init_models()
    logger.info("%s %s started", settings.app_name, settings.app_version)

    yield

    # ---- Shutdown ----
    storage = getattr(app.state, "storage", None)
    if storage is not None:
        await storage.aclose()
        app.state.storage = None
        logger.info("Storage backend closed")

    await dispose_engine()
