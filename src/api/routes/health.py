# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides health and readiness endpoints for the API.
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src import __version__
from src.api.dependencies import get_event_store
from src.core.config import get_settings
from src.infrastructure.stores import EventStore

logger = logging.getLogger(__name__)

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


class ComponentHealth(BaseModel):
    """Individual component health status."""
    status: str = Field(description="Component status")
    latency_ms: float | None = Field(None, description="Response latency in ms")
    message: str | None = Field(None, description="Additional status message")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    ready: bool = Field(description="Whether the service is ready")
    store: ComponentHealth = Field(description="Event store status")


async def check_store(store: EventStore) -> ComponentHealth:
    """Check the event store backend."""
    start = time.time()
    healthy = await store.health_check()
    latency = (time.time() - start) * 1000

    if not healthy:
        return ComponentHealth(
            status="unhealthy",
            message=f"{store.backend_name} backend unreachable",
        )
    return ComponentHealth(status="healthy", latency_ms=round(latency, 2))


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness check. Does not touch the event store."""
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        environment=settings.environment,
        uptime_seconds=int(time.time() - _server_start_time),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def ready(store: EventStore = Depends(get_event_store)) -> ReadinessResponse:
    """Readiness check against the configured event store."""
    store_health = await check_store(store)
    if store_health.status != "healthy":
        logger.warning("Readiness check failed: %s", store_health.message)
    return ReadinessResponse(ready=store_health.status == "healthy", store=store_health)
