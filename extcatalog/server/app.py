"""
Extension catalog FastAPI entrypoint.

``create_app`` wires logging, CORS, request-id/timing middleware, the error
handlers and the catalog routes around a :class:`CatalogService`. Servers
launch it with ``uvicorn --factory extcatalog.server.app:create_app``; tests
pass their own service built on an in-memory store.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from extcatalog import __version__
from extcatalog.catalog.seed import seed_catalog
from extcatalog.catalog.service import CatalogService
from extcatalog.catalog.sql_store import SqlCatalogStore
from extcatalog.config import CatalogSettings, load_settings
from extcatalog.logging_config import init_logging
from extcatalog.server.core.errors import register_exception_handlers
from extcatalog.server.core.middleware_ex import RequestIDMiddleware, TimingMiddleware
from extcatalog.server.modules import catalog_api

LOGGER = logging.getLogger(__name__)


def _configure_logging(settings: CatalogSettings) -> Optional[Path]:
    log_path = init_logging(settings.log_dir, level=settings.log_level)
    LOGGER.info(
        "Server logging configured",
        extra={"log_path": str(log_path), "log_level": settings.log_level},
    )
    return log_path


def build_service(settings: CatalogSettings) -> CatalogService:
    """Bind the service to the configured database, seeding it when asked."""
    store = SqlCatalogStore(settings.database_url)
    if settings.seed_on_start:
        seed_catalog(store)
    return CatalogService(store, default_page_size=settings.default_page_size)


def create_app(
    *,
    service: Optional[CatalogService] = None,
    settings: Optional[CatalogSettings] = None,
    enable_cors: bool = True,
    configure_logging: bool = True,
) -> FastAPI:
    """Application factory used by the CLI, ASGI servers and tests."""
    settings = settings or load_settings()
    log_path = _configure_logging(settings) if configure_logging else None

    app = FastAPI(title="Extension Catalog", version=__version__)
    app.state.version = __version__
    app.state.settings = settings
    app.state.log_path = log_path
    app.state.catalog = service if service is not None else build_service(settings)

    if enable_cors and settings.cors_origins:
        origins = list(settings.cors_origins)
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )
        LOGGER.info("CORS enabled", extra={"origins": origins})

    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app)
    app.include_router(catalog_api.router)

    @app.get("/health", tags=["System"], summary="Simple health probe")
    async def core_health():
        return {"status": "ok"}

    @app.get("/healthz", include_in_schema=False)
    async def _healthz():
        return {"ok": True}

    LOGGER.info(
        "FastAPI application ready",
        extra={
            "routes": sorted(
                {route.path for route in app.routes if isinstance(route, APIRoute)}
            ),
            "version": __version__,
        },
    )
    return app
