# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event store interface for the scoring engine.

An event store reads the four streams the scoring engine consumes (students,
groups, attendance records and reward/penalty/grade events) for a single
owning teacher. Backends only read; scores are never written back.

All backends must:
1. Scope every query by owner_id
2. Return validated models from src.domains.scoring.models
3. Wrap backend exceptions in EventStoreError
4. Return [] for an explicitly empty student id filter without querying
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from src.domains.scoring.models import AttendanceRecord, Group, RewardEvent, Student

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


def chunked(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Split items into lists of at most size elements.

    Args:
        items: Items to split, in order.
        size: Maximum chunk length, at least 1.

    Yields:
        Consecutive chunks; nothing for empty input.
    """
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    chunk: list[T] = []
    for item in items:
        chunk.append(item)
        if len(chunk) == size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


def unique_ids(student_ids: Iterable[Any]) -> list[str]:
    """Deduplicate ids as strings, keeping first-seen order."""
    return list(dict.fromkeys(str(student_id) for student_id in student_ids))


def parse_rows(model: type[M], rows: Iterable[Mapping[str, Any]], backend: str) -> list[M]:
    """Validate raw backend rows into models, skipping rows that cannot be read.

    Args:
        model: Target pydantic model.
        rows: Raw rows or documents.
        backend: Backend name for log messages.

    Returns:
        The rows that validated, in input order.
    """
    parsed: list[M] = []
    skipped = 0
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError:
            skipped += 1
    if skipped:
        logger.warning(
            "Skipped %d unreadable %s rows from %s", skipped, model.__name__, backend
        )
    return parsed


class EventStore(ABC):
    """Abstract read-only source of scoring events.

    Subclasses set ``backend_name`` and implement the fetch methods.
    """

    backend_name: str = "unknown"

    @abstractmethod
    async def fetch_students(
        self,
        owner_id: str,
        group_name: str | None = None,
        active_only: bool = True,
    ) -> list[Student]:
        """Fetch the owner's students.

        Args:
            owner_id: Owning teacher.
            group_name: Restrict to one group.
            active_only: Skip archived students.
        """
        ...

    @abstractmethod
    async def fetch_groups(self, owner_id: str) -> list[Group]:
        """Fetch the owner's groups."""
        ...

    @abstractmethod
    async def fetch_attendance(
        self,
        owner_id: str,
        student_ids: Sequence[str] | None = None,
    ) -> list[AttendanceRecord]:
        """Fetch attendance records, optionally restricted to some students."""
        ...

    @abstractmethod
    async def fetch_reward_events(
        self,
        owner_id: str,
        student_ids: Sequence[str] | None = None,
    ) -> list[RewardEvent]:
        """Fetch reward/penalty/grade events, optionally restricted to some students."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        return None

    async def health_check(self) -> bool:
        """Check whether the backend is reachable."""
        return True
