# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the scoring API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src import __version__
from src.api.dependencies import close_store, init_store
from src.api.middleware import LoggingContextMiddleware
from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import get_settings
from src.domains.scoring import StatisticsUnavailableError
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Configures logging and opens the event store on startup, closes the
    store on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info(
        "Starting scoring API",
        extra={"environment": settings.environment, "backend": settings.store_backend},
    )

    # =========================================================================
    # Startup
    # =========================================================================
    try:
        await init_store()
        logger.info("Event store initialized")
    except Exception as e:
        # requests fail with 503 until the store is reachable
        logger.warning("Failed to initialize event store: %s", str(e))

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================
    try:
        await close_store()
        logger.info("Event store closed")
    except Exception as e:
        logger.warning("Error closing event store: %s", str(e))

    logger.info("Shutting down scoring API")


async def statistics_unavailable_handler(
    request: Request,
    exc: StatisticsUnavailableError,
) -> JSONResponse:
    """Return a sanitized 503 when statistics cannot be loaded."""
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": exc.user_message, "operation": exc.operation},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Student Scoring API",
        description="Student scores, rankings and group statistics",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        redirect_slashes=False,
    )

    # =========================================================================
    # Exception handlers
    # =========================================================================
    app.add_exception_handler(StatisticsUnavailableError, statistics_unavailable_handler)

    # =========================================================================
    # Middleware
    # =========================================================================
    app.add_middleware(LoggingContextMiddleware)

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
