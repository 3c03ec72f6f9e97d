# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the Postgres event store.

This package provides:
- connection: Async engine and sessionmaker creation, connectivity probe
- tables: SQLAlchemy Core tables for students, groups and event streams
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    create_database_engine,
    create_sessionmaker,
)
from src.infrastructure.database.tables import (
    attendance_records,
    groups,
    metadata,
    reward_penalty_history,
    students,
)

__all__ = [
    # Connection
    "DatabaseError",
    "create_database_engine",
    "create_sessionmaker",
    "check_database_connection",
    # Tables
    "metadata",
    "groups",
    "students",
    "attendance_records",
    "reward_penalty_history",
]
