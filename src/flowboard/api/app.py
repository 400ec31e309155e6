"""FastAPI application exposing the admin auth operations."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from flowboard import __version__, db, events
from flowboard.api.routes import health_router, router
from flowboard.auth.service import AdminAuthService
from flowboard.config import Settings, StoreBackend, settings
from flowboard.store.factory import make_store

logger = logging.getLogger(__name__)


def create_app(service: AdminAuthService | None = None, cfg: Settings = settings) -> FastAPI:
    """Build the app.

    With ``service`` given (tests), its store is used as-is and no database
    pool is opened.
    """
    uses_postgres = service is None and cfg.store_backend == StoreBackend.POSTGRES

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if uses_postgres:
            await db.init_pool()
            logger.info("Database pool open")
        yield
        if uses_postgres:
            await db.close_pool()

    app = FastAPI(
        title="Flowboard Admin Auth",
        description="Admin login with TOTP two-factor authentication",
        version=__version__,
        lifespan=lifespan,
    )

    if service is None:
        store = make_store(cfg)
        emit = events.async_emit if uses_postgres else events.log_only_emit
        service = AdminAuthService.from_settings(store, cfg, emit=emit)
    app.state.auth_service = service
    app.state.store = service.store

    app.include_router(router)
    app.include_router(health_router)
    return app
