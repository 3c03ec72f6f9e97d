# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event store backends for the scoring engine.

This package provides:
- EventStore: Abstract read-only source of students, groups and events
- FirestoreEventStore: Firestore REST backend
- PostgresEventStore: SQLAlchemy async backend
- create_event_store: Backend selection from settings
"""

from src.infrastructure.stores.base import EventStore, chunked
from src.infrastructure.stores.errors import EventStoreError, EventStoreUnavailableError
from src.infrastructure.stores.factory import available_backends, create_event_store
from src.infrastructure.stores.firestore import FirestoreEventStore
from src.infrastructure.stores.postgres import PostgresEventStore

__all__ = [
    "EventStore",
    "EventStoreError",
    "EventStoreUnavailableError",
    "chunked",
    "FirestoreEventStore",
    "PostgresEventStore",
    "create_event_store",
    "available_backends",
]
