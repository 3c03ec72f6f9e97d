# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-student score aggregation.

This module is the single implementation of the student score formula.
It joins one student's attendance marks and reward/penalty/grade ledger
against the student's group calendar, bounded by the join date (and the
leave date for archived students).

Usage:
    from src.domains.scoring import aggregate, build_calendar, group_lookup

    calendar = build_calendar(records, group_lookup(students))
    result = aggregate(student, calendar, records, rewards)
    result.total_score
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from typing import Any

from src.domains.scoring.class_calendar import (
    DateRange,
    build_calendar,
    group_lookup,
)
from src.domains.scoring.constants import LATE_POINTS, PRESENT_POINTS, round_half_up
from src.domains.scoring.models import (
    AttendanceRecord,
    AttendanceStatus,
    RewardEvent,
    RewardType,
    Student,
)
from src.utils.datetime import to_calendar_day


@dataclass(frozen=True)
class ScoreResult:
    """Derived score of one student. Recomputed on every read, never stored.

    Attributes:
        total_score: reward_penalty_points + attendance_points.
        attendance_points: present * 1 + late * 0.5.
        mukofot_points: Sum of reward points.
        jarima_points: Sum of penalty points.
        baho_score: Sum of grade points.
        baho_count: Number of grades.
        baho_average: Mean grade, 0 without grades.
        present_count: Days marked present.
        late_count: Days marked late.
        absent_count: Class days neither present nor late (never negative).
        excused_absent_count: Days explicitly marked absent with a reason.
        unexcused_absent_count: Days explicitly marked absent without a reason.
        total_classes: Group class days inside the student's window.
        attendance_percentage: Rounded share of class days attended.
        reward_penalty_points: mukofot_points - jarima_points.
        efficiency: Equal to attendance_percentage.
    """

    total_score: float = 0.0
    attendance_points: float = 0.0
    mukofot_points: float = 0.0
    jarima_points: float = 0.0
    baho_score: float = 0.0
    baho_count: int = 0
    baho_average: float = 0.0
    present_count: int = 0
    late_count: int = 0
    absent_count: int = 0
    excused_absent_count: int = 0
    unexcused_absent_count: int = 0
    total_classes: int = 0
    attendance_percentage: int = 0
    reward_penalty_points: float = 0.0
    efficiency: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class StudentScore:
    """A student's identity together with the computed score."""

    student_id: str
    name: str
    group_name: str
    join_date: str
    score: ScoreResult

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses and exports."""
        return {
            "student_id": self.student_id,
            "name": self.name,
            "group_name": self.group_name,
            "join_date": self.join_date,
            "score": self.score.to_dict(),
        }


def resolve_join_date(student: Student) -> str:
    """Get the first day a student counts for attendance.

    Prefers the explicit join_date and falls back to the creation timestamp.
    An empty string means "no lower bound".
    """
    if student.join_date:
        return student.join_date
    return to_calendar_day(student.created_at) or ""


def _window(
    student: Student,
    since: str | None,
    until: str | None,
) -> tuple[str, str | None]:
    lower = resolve_join_date(student)
    if since and since > lower:
        lower = since
    upper = student.leave_date
    if until and (upper is None or until < upper):
        upper = until
    return lower, upper


def aggregate(
    student: Student,
    calendar: Mapping[str, Iterable[str]],
    attendance: Iterable[AttendanceRecord],
    rewards: Iterable[RewardEvent],
    since: str | None = None,
    until: str | None = None,
) -> ScoreResult:
    """Compute the score of one student.

    Missing data is a valid zero state; this function never raises for it.

    Args:
        student: The student to score.
        calendar: Group name to class days, from build_calendar().
        attendance: Attendance records; other students' records are ignored.
        rewards: Reward/penalty/grade events; other students' are ignored.
        since: Optional first day of a reporting window.
        until: Optional last day of a reporting window.

    Returns:
        The complete ScoreResult.
    """
    lower, upper = _window(student, since, until)

    def in_window(day: str | None) -> bool:
        if day is None or day < lower:
            return False
        return upper is None or day <= upper

    class_days = calendar.get(student.group_name, ()) if student.group_name else ()
    total_classes = sum(1 for day in class_days if in_window(day))

    status_counts: dict[AttendanceStatus | None, int] = defaultdict(int)
    for record in attendance:
        if record.student_id == student.id and in_window(record.date):
            status_counts[record.status] += 1

    present = status_counts[AttendanceStatus.PRESENT]
    late = status_counts[AttendanceStatus.LATE]
    # records outside the recognised calendar must not push this negative
    absent = max(0, total_classes - present - late)

    attendance_points = present * PRESENT_POINTS + late * LATE_POINTS
    attendance_percentage = (
        round_half_up((present + late) / total_classes * 100) if total_classes > 0 else 0
    )

    mukofot = jarima = baho = 0.0
    baho_count = 0
    for event in rewards:
        if event.student_id != student.id or not in_window(event.date):
            continue
        if event.type is RewardType.REWARD:
            mukofot += event.points
        elif event.type is RewardType.PENALTY:
            jarima += event.points
        elif event.type is RewardType.GRADE:
            baho += event.points
            baho_count += 1

    reward_penalty_points = mukofot - jarima

    return ScoreResult(
        total_score=reward_penalty_points + attendance_points,
        attendance_points=attendance_points,
        mukofot_points=mukofot,
        jarima_points=jarima,
        baho_score=baho,
        baho_count=baho_count,
        baho_average=baho / baho_count if baho_count > 0 else 0.0,
        present_count=present,
        late_count=late,
        absent_count=absent,
        excused_absent_count=status_counts[AttendanceStatus.ABSENT_EXCUSED],
        unexcused_absent_count=status_counts[AttendanceStatus.ABSENT_UNEXCUSED],
        total_classes=total_classes,
        attendance_percentage=attendance_percentage,
        reward_penalty_points=reward_penalty_points,
        efficiency=float(attendance_percentage),
    )


def score_students(
    students: Iterable[Student],
    attendance: Iterable[AttendanceRecord],
    rewards: Iterable[RewardEvent],
    since: str | None = None,
    date_range: DateRange | None = None,
) -> list[StudentScore]:
    """Score a batch of students against one shared class calendar.

    Args:
        students: Students to score, in display order.
        attendance: Attendance records of (at least) these students.
        rewards: Ledger events of (at least) these students.
        since: Optional first day of a reporting period.
        date_range: Optional inclusive (from, to) window; also bounds the calendar.

    Returns:
        One StudentScore per student, in input order.
    """
    students = list(students)
    attendance = list(attendance)

    calendar = build_calendar(
        attendance,
        group_lookup(students),
        date_range=date_range,
        groups=(student.group_name for student in students),
    )

    range_start = range_end = None
    if date_range is not None:
        range_start, range_end = (to_calendar_day(bound) for bound in date_range)
    if range_start and (since is None or range_start > since):
        since = range_start

    attendance_by_student: dict[str, list[AttendanceRecord]] = defaultdict(list)
    for record in attendance:
        attendance_by_student[record.student_id].append(record)
    rewards_by_student: dict[str, list[RewardEvent]] = defaultdict(list)
    for event in rewards:
        rewards_by_student[event.student_id].append(event)

    return [
        StudentScore(
            student_id=student.id,
            name=student.name,
            group_name=student.group_name,
            join_date=resolve_join_date(student),
            score=aggregate(
                student,
                calendar,
                attendance_by_student.get(student.id, ()),
                rewards_by_student.get(student.id, ()),
                since=since,
                until=range_end,
            ),
        )
        for student in students
    ]
