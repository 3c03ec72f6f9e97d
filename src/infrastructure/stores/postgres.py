# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Postgres event store using SQLAlchemy async.

Event tables are read in pages ordered by primary key so large histories
never have to be returned by a single query.

Example:
    store = PostgresEventStore.from_settings(settings)
    students = await store.fetch_students("teacher-1")
    events = await store.fetch_reward_events("teacher-1", [s.id for s in students])
    await store.close()
"""

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from sqlalchemy import Select, Table, select
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.domains.scoring.models import AttendanceRecord, Group, RewardEvent, Student
from src.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    create_database_engine,
    create_sessionmaker,
)
from src.infrastructure.database.tables import (
    attendance_records,
    groups,
    reward_penalty_history,
    students,
)
from src.infrastructure.stores.base import (
    EventStore,
    parse_rows,
    unique_ids,
)
from src.infrastructure.stores.errors import EventStoreError, EventStoreUnavailableError

if TYPE_CHECKING:
    from src.core.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000


class PostgresEventStore(EventStore):
    """Event store backed by PostgreSQL.

    Attributes:
        sessionmaker: Async sessionmaker used for every read.
        page_size: Rows fetched per query.
    """

    backend_name = "postgres"

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        page_size: int = DEFAULT_PAGE_SIZE,
        engine: AsyncEngine | None = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.sessionmaker = sessionmaker
        self.page_size = page_size
        self._engine = engine

    @classmethod
    def from_settings(cls, settings: "Settings") -> "PostgresEventStore":
        """Create a store with its own engine configured from settings.

        Raises:
            EventStoreError: If the engine cannot be created.
        """
        try:
            engine = create_database_engine(settings)
        except DatabaseError as e:
            raise EventStoreError(
                e.message, backend=cls.backend_name, original_error=e.original_error
            ) from e
        return cls(
            create_sessionmaker(engine),
            page_size=settings.postgres.page_size,
            engine=engine,
        )

    async def _fetch_all(self, table: Table, query: Select) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        offset = 0
        try:
            async with self.sessionmaker() as session:
                while True:
                    page = query.order_by(table.c.id).offset(offset).limit(self.page_size)
                    result = await session.execute(page)
                    batch = [dict(row) for row in result.mappings().all()]
                    rows.extend(batch)
                    if len(batch) < self.page_size:
                        break
                    offset += self.page_size
        except OSError as e:
            raise EventStoreUnavailableError(
                f"Database unavailable while reading {table.name}",
                backend=self.backend_name,
                original_error=e,
            ) from e
        except DBAPIError as e:
            error_cls = EventStoreUnavailableError if e.connection_invalidated else EventStoreError
            raise error_cls(
                f"Failed to read {table.name}",
                backend=self.backend_name,
                original_error=e,
            ) from e
        except SQLAlchemyError as e:
            raise EventStoreError(
                f"Failed to read {table.name}",
                backend=self.backend_name,
                original_error=e,
            ) from e
        return rows

    async def _fetch_for_students(
        self,
        table: Table,
        owner_id: str,
        student_ids: Sequence[str] | None,
    ) -> list[dict[str, Any]]:
        query = select(table).where(table.c.teacher_id == owner_id)
        if student_ids is not None:
            ids = unique_ids(student_ids)
            if not ids:
                return []
            query = query.where(table.c.student_id.in_(ids))
        return await self._fetch_all(table, query)

    async def fetch_students(
        self,
        owner_id: str,
        group_name: str | None = None,
        active_only: bool = True,
    ) -> list[Student]:
        query = select(students).where(students.c.teacher_id == owner_id)
        if active_only:
            query = query.where(students.c.is_active.is_(True))
        if group_name is not None:
            query = query.where(students.c.group_name == group_name)

        rows = await self._fetch_all(students, query)
        logger.debug("Fetched %d students for %s", len(rows), owner_id)
        return parse_rows(Student, rows, self.backend_name)

    async def fetch_groups(self, owner_id: str) -> list[Group]:
        query = select(groups).where(
            groups.c.teacher_id == owner_id,
            groups.c.is_active.is_(True),
        )
        rows = await self._fetch_all(groups, query)
        return parse_rows(Group, rows, self.backend_name)

    async def fetch_attendance(
        self,
        owner_id: str,
        student_ids: Sequence[str] | None = None,
    ) -> list[AttendanceRecord]:
        rows = await self._fetch_for_students(attendance_records, owner_id, student_ids)
        logger.debug("Fetched %d attendance records for %s", len(rows), owner_id)
        return parse_rows(AttendanceRecord, rows, self.backend_name)

    async def fetch_reward_events(
        self,
        owner_id: str,
        student_ids: Sequence[str] | None = None,
    ) -> list[RewardEvent]:
        rows = await self._fetch_for_students(reward_penalty_history, owner_id, student_ids)
        logger.debug("Fetched %d reward events for %s", len(rows), owner_id)
        return parse_rows(RewardEvent, rows, self.backend_name)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    async def health_check(self) -> bool:
        if self._engine is None:
            return False
        return await check_database_connection(self._engine)
