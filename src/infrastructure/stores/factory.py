# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event store factory.

Selects the event store backend named by ``settings.store_backend``.

Example:
    from src.infrastructure.stores import create_event_store

    store = create_event_store(get_settings())
"""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from src.infrastructure.stores.base import EventStore
from src.infrastructure.stores.errors import EventStoreError
from src.infrastructure.stores.firestore import FirestoreEventStore
from src.infrastructure.stores.postgres import PostgresEventStore

if TYPE_CHECKING:
    from src.core.config.settings import Settings

logger = logging.getLogger(__name__)

_BACKENDS: dict[str, Callable[["Settings"], EventStore]] = {
    "firestore": FirestoreEventStore.from_settings,
    "postgres": PostgresEventStore.from_settings,
}


def available_backends() -> list[str]:
    """Get the names of all supported backends."""
    return sorted(_BACKENDS)


def create_event_store(settings: "Settings") -> EventStore:
    """Create the configured event store.

    Args:
        settings: Application settings.

    Returns:
        A ready-to-use EventStore.

    Raises:
        EventStoreError: If the backend is unknown or fails to initialize.
    """
    factory = _BACKENDS.get(settings.store_backend)
    if factory is None:
        raise EventStoreError(
            f"Unknown event store backend: {settings.store_backend}. "
            f"Available: {', '.join(available_backends())}"
        )

    store = factory(settings)
    logger.info("Event store initialized: %s", store.backend_name)
    return store
