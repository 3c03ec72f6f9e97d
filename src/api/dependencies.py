# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get the event store opened at startup
- Get a scoring service scoped to the teacher in the path

Example:
    @router.get("/students")
    async def list_students(
        service: ScoringService = Depends(get_scoring_service),
    ):
        ...
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Path, status

from src.core.config import get_settings
from src.domains.scoring import ScoringService
from src.infrastructure.stores import EventStore, create_event_store
from src.utils.logging import bind_context

logger = logging.getLogger(__name__)

# Event store singleton
_event_store: EventStore | None = None


async def init_store() -> None:
    """Open the configured event store."""
    global _event_store
    _event_store = create_event_store(get_settings())


async def close_store() -> None:
    """Close the event store."""
    global _event_store

    if _event_store is not None:
        await _event_store.close()
        _event_store = None


def get_event_store() -> EventStore:
    """Get the event store.

    Raises:
        HTTPException: If the store was not initialized at startup.
    """
    if _event_store is None:
        logger.warning("Request received before the event store was initialized")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Event store not initialized",
        )
    return _event_store


def get_scoring_service(
    teacher_id: Annotated[str, Path(min_length=1, description="Owning teacher id")],
    store: EventStore = Depends(get_event_store),
) -> ScoringService:
    """Get a scoring service for the teacher in the request path.

    Also binds teacher_id to the logging context of the request.
    """
    bind_context(teacher_id=teacher_id)
    return ScoringService(store=store, owner_id=teacher_id)
