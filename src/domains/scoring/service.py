# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scoring service module.

This module provides the service that loads a teacher's students and event
streams from an EventStore and runs the pure scoring functions over them.
Nothing is cached or persisted: every call reads fresh data and recomputes.

Usage:
    from src.domains.scoring import ScoringService

    service = ScoringService(store=store, owner_id="teacher-1")

    # Score table for one group, current month
    scores = await service.get_student_scores(group_name="7-A", period="1_month")

    # Ranked and filtered table
    ranked = await service.get_rankings(
        sort=SortState(SortKey.TOTAL_SCORE, SortDirection.DESC),
        filters=StudentFilter(quick_filter="risk"),
    )

    # Group card and dashboard
    stats = await service.get_group_statistics("7-A", period="1_week")
    dashboard = await service.get_dashboard(period="3_months")
"""

import asyncio
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from src.domains.scoring.calculator import StudentScore, score_students
from src.domains.scoring.class_calendar import DateRange
from src.domains.scoring.models import AttendanceRecord, RewardEvent, Student
from src.domains.scoring.ranking import (
    RankedStudent,
    SortState,
    StudentFilter,
    apply_filters,
    rank,
    student_rank,
)
from src.domains.scoring.rollup import (
    Dashboard,
    GroupRanking,
    GroupStatistics,
    dashboard_stats,
    group_rankings,
    monthly_analysis,
    rollup,
)
from src.infrastructure.stores.errors import EventStoreError, EventStoreUnavailableError
from src.utils.datetime import Period, period_start, tashkent_today
from src.utils.logging import get_logger

if TYPE_CHECKING:
    from src.infrastructure.stores.base import EventStore

logger = get_logger(__name__)

USER_MESSAGES = {
    "fetch": "Could not load statistics",
    "unavailable": "Statistics are temporarily unavailable. Please try again",
}


class StatisticsUnavailableError(Exception):
    """Raised when statistics cannot be computed because data could not be read.

    Attributes:
        operation: Service operation that failed.
        user_message: Sanitized message safe to show to end users.
        original_error: The underlying event store error.
    """

    def __init__(
        self,
        operation: str,
        user_message: str = USER_MESSAGES["fetch"],
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(user_message)
        self.operation = operation
        self.user_message = user_message
        self.original_error = original_error


@dataclass(frozen=True)
class EventSnapshot:
    """Students and their event streams as read for one request."""

    students: list[Student]
    attendance: list[AttendanceRecord]
    rewards: list[RewardEvent]


class ScoringService:
    """Service for computing scores and statistics for one teacher.

    Attributes:
        store: Event store to read from.
        owner_id: Teacher whose data is read.
    """

    def __init__(
        self,
        store: "EventStore",
        owner_id: str,
        today: Callable[[], date] = tashkent_today,
    ) -> None:
        """Initialize the scoring service.

        Args:
            store: Event store to read from.
            owner_id: Teacher whose data is read.
            today: Clock returning the current calendar day.
        """
        self.store = store
        self.owner_id = owner_id
        self._today = today

    @contextmanager
    def _reading(self, operation: str) -> Iterator[None]:
        try:
            yield
        except EventStoreError as e:
            logger.error(
                "Event store read failed",
                operation=operation,
                teacher_id=self.owner_id,
                backend=e.backend,
                error=str(e),
            )
            key = "unavailable" if isinstance(e, EventStoreUnavailableError) else "fetch"
            raise StatisticsUnavailableError(operation, USER_MESSAGES[key], e) from e

    async def _events_for(self, students: Sequence[Student]) -> EventSnapshot:
        ids = [student.id for student in students]
        attendance, rewards = await asyncio.gather(
            self.store.fetch_attendance(self.owner_id, ids),
            self.store.fetch_reward_events(self.owner_id, ids),
        )
        return EventSnapshot(list(students), attendance, rewards)

    async def _load(self, group_name: str | None = None) -> EventSnapshot:
        if group_name is not None:
            students = await self.store.fetch_students(self.owner_id, group_name=group_name)
            return await self._events_for(students)

        students, attendance, rewards = await asyncio.gather(
            self.store.fetch_students(self.owner_id),
            self.store.fetch_attendance(self.owner_id),
            self.store.fetch_reward_events(self.owner_id),
        )
        return EventSnapshot(students, attendance, rewards)

    def _score(
        self,
        snapshot: EventSnapshot,
        period: Period | str,
        date_range: DateRange | None = None,
    ) -> list[StudentScore]:
        return score_students(
            snapshot.students,
            snapshot.attendance,
            snapshot.rewards,
            since=period_start(period, self._today()),
            date_range=date_range,
        )

    async def get_student_scores(
        self,
        group_name: str | None = None,
        period: Period | str = Period.ALL,
        date_range: DateRange | None = None,
    ) -> list[StudentScore]:
        """Get scores of the teacher's active students.

        Args:
            group_name: Restrict to one group.
            period: Relative window ending today, or ALL.
            date_range: Optional inclusive (from, to) window.

        Returns:
            One StudentScore per active student, in store order.

        Raises:
            StatisticsUnavailableError: If the event store cannot be read.
        """
        with self._reading("get_student_scores"):
            snapshot = await self._load(group_name)

        scores = self._score(snapshot, period, date_range)
        logger.debug(
            "Scores computed",
            teacher_id=self.owner_id,
            group_name=group_name,
            students=len(scores),
        )
        return scores

    async def get_student_score(
        self,
        student_id: str,
        period: Period | str = Period.ALL,
    ) -> StudentScore | None:
        """Get one student's score, including archived students.

        The student is scored against the class calendar of their group.

        Returns:
            The StudentScore, or None if the student does not exist.
        """
        with self._reading("get_student_score"):
            students = await self.store.fetch_students(self.owner_id, active_only=False)
            student = next((s for s in students if s.id == student_id), None)
            if student is None:
                return None

            members = [
                s
                for s in students
                if s.id == student_id
                or (s.is_active and student.group_name and s.group_name == student.group_name)
            ]
            snapshot = await self._events_for(members)

        scores = self._score(snapshot, period)
        return next(row for row in scores if row.student_id == student_id)

    async def get_rankings(
        self,
        sort: SortState | None = None,
        filters: StudentFilter | None = None,
        period: Period | str = Period.ALL,
        date_range: DateRange | None = None,
    ) -> list[RankedStudent]:
        """Get the filtered, sorted score table with rank positions.

        Rank positions are computed over the filtered rows.
        """
        sort = sort or SortState()
        group_name = filters.group_name if filters and filters.group_name != "all" else None
        scores = await self.get_student_scores(
            group_name=group_name, period=period, date_range=date_range
        )
        return rank(apply_filters(scores, filters), sort.key, sort.direction)

    async def get_student_rank(
        self,
        student_id: str,
        period: Period | str = Period.ALL,
    ) -> int:
        """Get a student's 1-based rank among all active students.

        Unknown students get the last position.
        """
        scores = await self.get_student_scores(period=period)
        return student_rank(scores, student_id)

    async def find_student_rank(
        self,
        student_id: str,
        period: Period | str = Period.ALL,
    ) -> int | None:
        """Get an active student's 1-based rank among all active students.

        Returns:
            The rank, or None if student_id is not an active student.
        """
        scores = await self.get_student_scores(period=period)
        if not any(row.student_id == student_id for row in scores):
            return None
        return student_rank(scores, student_id)

    async def get_group_statistics(
        self,
        group_name: str,
        period: Period | str = Period.ALL,
    ) -> GroupStatistics:
        """Get the statistics card of one group."""
        with self._reading("get_group_statistics"):
            snapshot = await self._load(group_name)

        return rollup(
            [student.id for student in snapshot.students],
            snapshot.attendance,
            snapshot.rewards,
            period=period,
            student_names={student.id: student.name for student in snapshot.students},
            today=self._today(),
        )

    async def get_dashboard(
        self,
        period: Period | str = Period.ALL,
        group_name: str | None = None,
    ) -> Dashboard:
        """Get dashboard headline numbers and the monthly breakdown."""
        with self._reading("get_dashboard"):
            snapshot = await self._load(group_name)

        today = self._today()
        scores = self._score(snapshot, period)
        return Dashboard(
            stats=dashboard_stats(scores, snapshot.attendance, period=period, today=today),
            monthly=monthly_analysis(
                snapshot.attendance,
                [student.id for student in snapshot.students],
                period=period,
                today=today,
            ),
        )

    async def get_group_rankings(self, period: Period | str = Period.ALL) -> list[GroupRanking]:
        """Get groups ranked by attendance efficiency."""
        scores = await self.get_student_scores(period=period)
        return group_rankings(scores)
