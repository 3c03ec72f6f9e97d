# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scoring domain.

This module turns attendance marks and reward/penalty/grade events into
derived statistics:
- Per-student scores against the group class calendar
- Sorting, filtering and rank positions
- Group statistics, dashboard numbers and monthly breakdowns

The computation modules are pure and synchronous. ScoringService is the
async boundary that reads from an EventStore.

Usage:
    from src.domains.scoring import ScoringService, score_students

    scores = score_students(students, attendance, rewards)

    service = ScoringService(store=store, owner_id="teacher-1")
    ranked = await service.get_rankings()
"""

from src.domains.scoring.calculator import (
    ScoreResult,
    StudentScore,
    aggregate,
    resolve_join_date,
    score_students,
)
from src.domains.scoring.class_calendar import ClassCalendar, build_calendar, group_lookup
from src.domains.scoring.constants import (
    LATE_POINTS,
    PRESENT_POINTS,
    RISK_ATTENDANCE_BELOW,
    TOP_ATTENDANCE_FROM,
    round_half_up,
)
from src.domains.scoring.latest import LatestResultGate, StaleResultError
from src.domains.scoring.models import (
    AttendanceRecord,
    AttendanceStatus,
    Group,
    RewardEvent,
    RewardType,
    Student,
)
from src.domains.scoring.ranking import (
    QuickFilter,
    RankedStudent,
    SortDirection,
    SortKey,
    SortState,
    StudentFilter,
    apply_filters,
    assign_ranks,
    rank,
    sort_scores,
    student_rank,
)
from src.domains.scoring.rollup import (
    Dashboard,
    DashboardStats,
    GroupRanking,
    GroupStatistics,
    MonthlyData,
    TopStudent,
    dashboard_stats,
    group_rankings,
    monthly_analysis,
    rollup,
)
from src.domains.scoring.service import (
    ScoringService,
    StatisticsUnavailableError,
)

__all__ = [
    # Models
    "AttendanceRecord",
    "AttendanceStatus",
    "Group",
    "RewardEvent",
    "RewardType",
    "Student",
    # Constants
    "PRESENT_POINTS",
    "LATE_POINTS",
    "RISK_ATTENDANCE_BELOW",
    "TOP_ATTENDANCE_FROM",
    "round_half_up",
    # Calendar and aggregation
    "ClassCalendar",
    "build_calendar",
    "group_lookup",
    "ScoreResult",
    "StudentScore",
    "aggregate",
    "resolve_join_date",
    "score_students",
    # Ranking
    "QuickFilter",
    "RankedStudent",
    "SortDirection",
    "SortKey",
    "SortState",
    "StudentFilter",
    "apply_filters",
    "assign_ranks",
    "rank",
    "sort_scores",
    "student_rank",
    # Roll-ups
    "Dashboard",
    "DashboardStats",
    "GroupRanking",
    "GroupStatistics",
    "MonthlyData",
    "TopStudent",
    "dashboard_stats",
    "group_rankings",
    "monthly_analysis",
    "rollup",
    # Service
    "ScoringService",
    "StatisticsUnavailableError",
    "LatestResultGate",
    "StaleResultError",
]
