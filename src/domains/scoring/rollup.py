# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Group, dashboard and monthly roll-ups.

This module summarizes events and per-student scores over a group or over
a reporting period:
- rollup: Group statistics card (lessons, rewards, top student, grades)
- dashboard_stats: Teacher dashboard headline numbers
- monthly_analysis: Attendance breakdown per calendar month
- group_rankings: Groups ordered by attendance efficiency

All point arithmetic uses the constants of src.domains.scoring.constants.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any

from src.domains.scoring.calculator import StudentScore
from src.domains.scoring.constants import (
    LATE_POINTS,
    PRESENT_POINTS,
    UNKNOWN_STUDENT_NAME,
    round_half_up,
)
from src.domains.scoring.models import (
    AttendanceRecord,
    AttendanceStatus,
    RewardEvent,
    RewardType,
)
from src.utils.datetime import Period, month_key, period_start


@dataclass(frozen=True)
class TopStudent:
    """Highest scoring student of a roll-up."""

    student_id: str
    name: str
    score: float


@dataclass(frozen=True)
class GroupStatistics:
    """Statistics card of one group over a period.

    Attributes:
        total_lessons: Distinct class days in the period.
        total_rewards: Sum of reward points.
        total_penalties: Sum of penalty points.
        last_activity_date: Latest day with any event, None without events.
        total_students: Number of students in the group.
        total_attendance_records: Attendance marks in the period.
        attendance_percentage: Present or late share of possible marks.
        average_grade: Mean grade points (1 decimal).
        top_student: Highest total score, None without scored events.
    """

    total_lessons: int = 0
    total_rewards: float = 0.0
    total_penalties: float = 0.0
    last_activity_date: str | None = None
    total_students: int = 0
    total_attendance_records: int = 0
    attendance_percentage: int = 0
    average_grade: float = 0.0
    top_student: TopStudent | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class DashboardStats:
    """Headline numbers of the teacher dashboard."""

    total_students: int = 0
    total_classes: int = 0
    average_attendance: float = 0.0
    top_student: TopStudent | None = None


@dataclass(frozen=True)
class MonthlyData:
    """Attendance breakdown of one calendar month."""

    month: str
    total_classes: int
    total_students: int
    average_attendance: float
    late_percentage: float
    absent_percentage: float
    efficiency: float


@dataclass(frozen=True)
class GroupRanking:
    """One group's position in the attendance efficiency ranking."""

    group_name: str
    total_students: int
    attendance_percentage: float
    late_percentage: float
    absent_percentage: float
    total_classes: int
    efficiency: float
    rank: int


@dataclass(frozen=True)
class Dashboard:
    """Dashboard headline numbers together with the monthly breakdown."""

    stats: DashboardStats
    monthly: list[MonthlyData] = field(default_factory=list)


def _percent(part: float, whole: float) -> float:
    if whole <= 0:
        return 0.0
    return round_half_up(part / whole * 100, 2)


def _in_period(day: str | None, start: str | None) -> bool:
    return day is not None and (start is None or day >= start)


def rollup(
    student_ids: Iterable[str],
    attendance: Iterable[AttendanceRecord],
    rewards: Iterable[RewardEvent],
    period: Period | str = Period.ALL,
    student_names: Mapping[str, str] | None = None,
    today: date | None = None,
) -> GroupStatistics:
    """Summarize one group's events over a period.

    Args:
        student_ids: Members of the group.
        attendance: Attendance records; non-members are ignored.
        rewards: Ledger events; non-members are ignored.
        period: Relative window ending today, or ALL.
        student_names: Names used for the top student.
        today: Reference day for the period.

    Returns:
        GroupStatistics, all zero for an empty group.
    """
    members = list(dict.fromkeys(student_ids))
    if not members:
        return GroupStatistics()

    member_set = set(members)
    names = student_names or {}
    start = period_start(period, today)

    window_attendance = [
        record
        for record in attendance
        if record.student_id in member_set and _in_period(record.date, start)
    ]
    window_rewards = [
        event
        for event in rewards
        if event.student_id in member_set and _in_period(event.date, start)
    ]

    scores: dict[str, float] = {}
    total_rewards = total_penalties = 0.0
    grade_total = 0.0
    grade_count = 0
    for event in window_rewards:
        if event.type is RewardType.REWARD:
            total_rewards += event.points
            scores[event.student_id] = scores.get(event.student_id, 0.0) + event.points
        elif event.type is RewardType.PENALTY:
            total_penalties += event.points
            scores[event.student_id] = scores.get(event.student_id, 0.0) - event.points
        elif event.type is RewardType.GRADE:
            grade_total += event.points
            grade_count += 1

    # present, late per student that has any attendance row
    marks: dict[str, list[int]] = {}
    for record in window_attendance:
        counts = marks.setdefault(record.student_id, [0, 0])
        if record.status is AttendanceStatus.PRESENT:
            counts[0] += 1
            scores[record.student_id] = scores.get(record.student_id, 0.0) + PRESENT_POINTS
        elif record.status is AttendanceStatus.LATE:
            counts[1] += 1
            scores[record.student_id] = scores.get(record.student_id, 0.0) + LATE_POINTS

    total_lessons = len({record.date for record in window_attendance})
    attended = sum(present + late for present, late in marks.values())
    possible = total_lessons * len(marks)

    top_id: str | None = None
    top_score = 0.0
    for student_id, score in scores.items():
        if top_id is None or score > top_score:
            top_id, top_score = student_id, score

    activity_days = [record.date for record in window_attendance]
    activity_days.extend(event.date for event in window_rewards)

    return GroupStatistics(
        total_lessons=total_lessons,
        total_rewards=total_rewards,
        total_penalties=total_penalties,
        last_activity_date=max(activity_days, default=None),
        total_students=len(members),
        total_attendance_records=len(window_attendance),
        attendance_percentage=round_half_up(attended / possible * 100) if possible else 0,
        average_grade=round_half_up(grade_total / grade_count, 1) if grade_count else 0.0,
        top_student=(
            TopStudent(
                student_id=top_id,
                name=names.get(top_id, UNKNOWN_STUDENT_NAME),
                score=round_half_up(top_score, 1),
            )
            if top_id is not None
            else None
        ),
    )


def dashboard_stats(
    scores: Sequence[StudentScore],
    attendance: Iterable[AttendanceRecord],
    period: Period | str = Period.ALL,
    today: date | None = None,
) -> DashboardStats:
    """Compute the dashboard headline numbers from per-student scores.

    Args:
        scores: Scores already computed for the same period.
        attendance: Attendance records used to count distinct class days.
        period: Relative window ending today, or ALL.
        today: Reference day for the period.
    """
    if not scores:
        return DashboardStats()

    attended = sum(row.score.present_count + row.score.late_count for row in scores)
    possible = sum(row.score.total_classes for row in scores)

    top = scores[0]
    for row in scores[1:]:
        if row.score.total_score > top.score.total_score:
            top = row

    student_ids = {row.student_id for row in scores}
    start = period_start(period, today)
    class_days = {
        record.date
        for record in attendance
        if record.student_id in student_ids and _in_period(record.date, start)
    }

    return DashboardStats(
        total_students=len(scores),
        total_classes=len(class_days),
        average_attendance=_percent(attended, possible),
        top_student=TopStudent(
            student_id=top.student_id,
            name=top.name,
            score=round_half_up(top.score.total_score, 1),
        ),
    )


def monthly_analysis(
    attendance: Iterable[AttendanceRecord],
    student_ids: Iterable[str],
    period: Period | str = Period.ALL,
    today: date | None = None,
) -> list[MonthlyData]:
    """Break attendance down by calendar month, oldest month first.

    Percentages are shares of the month's attendance records.
    """
    members = set(student_ids)
    start = period_start(period, today)

    days: dict[str, set[str]] = defaultdict(set)
    students: dict[str, set[str]] = defaultdict(set)
    statuses: dict[str, dict[AttendanceStatus | None, int]] = defaultdict(lambda: defaultdict(int))
    for record in attendance:
        if record.student_id not in members or not _in_period(record.date, start):
            continue
        month = month_key(record.date)
        days[month].add(record.date)
        students[month].add(record.student_id)
        statuses[month][record.status] += 1

    result = []
    for month in sorted(days):
        counts = statuses[month]
        total = sum(counts.values())
        present = counts[AttendanceStatus.PRESENT]
        late = counts[AttendanceStatus.LATE]
        attendance_pct = _percent(present + late, total)
        result.append(
            MonthlyData(
                month=month,
                total_classes=len(days[month]),
                total_students=len(students[month]),
                average_attendance=attendance_pct,
                late_percentage=_percent(late, total),
                absent_percentage=_percent(counts[AttendanceStatus.ABSENT_UNEXCUSED], total),
                efficiency=attendance_pct,
            )
        )
    return result


def group_rankings(scores: Iterable[StudentScore]) -> list[GroupRanking]:
    """Rank groups by attendance efficiency, best first."""
    totals: dict[str, dict[str, int]] = {}
    for row in scores:
        if not row.group_name:
            continue
        group = totals.setdefault(
            row.group_name,
            {"students": 0, "present": 0, "late": 0, "unexcused": 0, "possible": 0},
        )
        group["students"] += 1
        group["present"] += row.score.present_count
        group["late"] += row.score.late_count
        group["unexcused"] += row.score.unexcused_absent_count
        group["possible"] += row.score.total_classes

    unranked = [
        (group_name, group, _percent(group["present"] + group["late"], group["possible"]))
        for group_name, group in totals.items()
    ]
    # stable, so ties keep first-seen group order
    unranked.sort(key=lambda item: item[2], reverse=True)

    return [
        GroupRanking(
            group_name=group_name,
            total_students=group["students"],
            attendance_percentage=attendance_pct,
            late_percentage=_percent(group["late"], group["possible"]),
            absent_percentage=_percent(group["unexcused"], group["possible"]),
            total_classes=round_half_up(group["possible"] / group["students"]),
            efficiency=attendance_pct,
            rank=position,
        )
        for position, (group_name, group, attendance_pct) in enumerate(unranked, start=1)
    ]
