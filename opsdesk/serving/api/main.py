"""
FastAPI Application Factory

Creates and configures the main API application.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from opsdesk.config import Settings, get_settings
from opsdesk.config.logging import configure_logging
from opsdesk.database.connection import Database
from opsdesk.serving.api.errors import register_exception_handlers
from opsdesk.serving.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from opsdesk.serving.api.routes import analytics_router, health_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    configure_logging(settings=settings)

    logger.info("Starting OpsDesk API", environment=settings.app_env, version=settings.version)

    database = Database(settings.database.async_url, echo=settings.database.echo)
    try:
        await database.connect()
    except Exception as e:
        logger.warning("Database init failed", error=str(e))
    app.state.database = database

    yield

    logger.info("Shutting down...")
    await database.dispose()


def create_api_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="OpsDesk Operations API",
        description="Analytics over orders, campaigns and users for the operations dashboard",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router, tags=["Health"])
    app.include_router(analytics_router, prefix="/api/analytics", tags=["Analytics"])

    return app
