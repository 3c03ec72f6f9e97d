# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Sorting, filtering and rank positions over computed student scores.

Display order and rank position are independent: rows can be shown in any
order while rank_position always reflects total_score order.

Usage:
    from src.domains.scoring import SortState, StudentFilter, apply_filters, rank

    state = SortState().toggle("total_score")      # asc
    state = state.toggle("total_score")            # desc
    rows = apply_filters(scores, StudentFilter(quick_filter="risk"))
    ranked = rank(rows, state.key, state.direction)
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Self

from pydantic import BaseModel, ConfigDict
from pyuca import Collator

from src.domains.scoring.calculator import StudentScore
from src.domains.scoring.constants import RISK_ATTENDANCE_BELOW, TOP_ATTENDANCE_FROM


class SortKey(str, Enum):
    """Fields a score table can be sorted by."""

    NAME = "name"
    GROUP_NAME = "group_name"
    ATTENDANCE_PERCENTAGE = "attendance_percentage"
    TOTAL_SCORE = "total_score"


class SortDirection(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


class QuickFilter(str, Enum):
    """Named shortcuts for common score table filters."""

    RISK = "risk"
    TOP = "top"
    NEGATIVE = "negative"
    NO_ATTENDANCE = "no-attendance"


@lru_cache(maxsize=1)
def _collator() -> Collator:
    return Collator()


def collation_key(text: str) -> tuple[int, ...]:
    """Get a Unicode collation key, so accented letters sort beside their base letter."""
    return _collator().sort_key(text)


_SORT_FIELDS: dict[SortKey, Callable[[StudentScore], Any]] = {
    SortKey.NAME: lambda row: collation_key(row.name),
    SortKey.GROUP_NAME: lambda row: collation_key(row.group_name),
    SortKey.ATTENDANCE_PERCENTAGE: lambda row: row.score.attendance_percentage,
    SortKey.TOTAL_SCORE: lambda row: row.score.total_score,
}


@dataclass(frozen=True)
class SortState:
    """Tri-state sort selection: asc, then desc, then unsorted.

    Attributes:
        key: Selected sort field, None when unsorted.
        direction: Selected direction, None when unsorted.
    """

    key: SortKey | None = None
    direction: SortDirection | None = None

    def toggle(self, key: SortKey | str) -> Self:
        """Return the state after the user selects a sort field."""
        selected = SortKey(key)
        if self.key is not selected or self.direction is None:
            return type(self)(selected, SortDirection.ASC)
        if self.direction is SortDirection.ASC:
            return type(self)(selected, SortDirection.DESC)
        return type(self)()


@dataclass(frozen=True)
class RankedStudent:
    """A score row with its 1-based position by total score."""

    student: StudentScore
    rank_position: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {**self.student.to_dict(), "rank_position": self.rank_position}


class StudentFilter(BaseModel):
    """Score table filters. All active filters must match.

    Attributes:
        group_name: Keep only this group.
        search: Case-insensitive substring of name or student id.
        min_attendance: Inclusive lower bound on attendance percentage.
        max_attendance: Inclusive upper bound on attendance percentage.
        min_score: Inclusive lower bound on total score.
        max_score: Inclusive upper bound on total score.
        quick_filter: Named shortcut filter.
    """

    model_config = ConfigDict(frozen=True)

    group_name: str | None = None
    search: str | None = None
    min_attendance: float | None = None
    max_attendance: float | None = None
    min_score: float | None = None
    max_score: float | None = None
    quick_filter: QuickFilter | None = None

    def matches(self, row: StudentScore) -> bool:
        """Check whether a row passes every active filter."""
        score = row.score
        pct = score.attendance_percentage
        total = score.total_score

        if self.group_name and self.group_name != "all" and row.group_name != self.group_name:
            return False

        needle = (self.search or "").strip().casefold()
        if needle and needle not in row.name.casefold() and needle not in row.student_id.casefold():
            return False

        if self.min_attendance is not None and pct < self.min_attendance:
            return False
        if self.max_attendance is not None and pct > self.max_attendance:
            return False
        if self.min_score is not None and total < self.min_score:
            return False
        if self.max_score is not None and total > self.max_score:
            return False

        if self.quick_filter is QuickFilter.RISK:
            return pct < RISK_ATTENDANCE_BELOW
        if self.quick_filter is QuickFilter.TOP:
            return pct >= TOP_ATTENDANCE_FROM and total >= 0
        if self.quick_filter is QuickFilter.NEGATIVE:
            return total < 0
        if self.quick_filter is QuickFilter.NO_ATTENDANCE:
            return score.total_classes == 0
        return True


def apply_filters(rows: Iterable[StudentScore], filters: StudentFilter | None) -> list[StudentScore]:
    """Keep the rows matching every active filter, preserving order."""
    if filters is None:
        return list(rows)
    return [row for row in rows if filters.matches(row)]


def sort_scores(
    rows: Iterable[StudentScore],
    key: SortKey | str | None = None,
    direction: SortDirection | str | None = None,
) -> list[StudentScore]:
    """Sort rows for display.

    Without a key rows are ordered by name ascending. Sorting is stable in
    both directions, so equal rows keep their relative order.
    """
    if key is None:
        return sorted(rows, key=_SORT_FIELDS[SortKey.NAME])
    descending = direction is not None and SortDirection(direction) is SortDirection.DESC
    return sorted(rows, key=_SORT_FIELDS[SortKey(key)], reverse=descending)


def assign_ranks(rows: Sequence[StudentScore]) -> dict[str, int]:
    """Map each student id to its 1-based position by total score, descending."""
    ordered = sorted(rows, key=_SORT_FIELDS[SortKey.TOTAL_SCORE], reverse=True)
    return {row.student_id: position for position, row in enumerate(ordered, start=1)}


def rank(
    rows: Iterable[StudentScore],
    sort_key: SortKey | str | None = None,
    direction: SortDirection | str | None = None,
) -> list[RankedStudent]:
    """Order rows for display and attach each one's score rank."""
    rows = list(rows)
    positions = assign_ranks(rows)
    return [
        RankedStudent(student=row, rank_position=positions[row.student_id])
        for row in sort_scores(rows, sort_key, direction)
    ]


def student_rank(rows: Sequence[StudentScore], student_id: str) -> int:
    """Get one student's rank; unknown students rank last."""
    return assign_ranks(rows).get(student_id, len(rows))
