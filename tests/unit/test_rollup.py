# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for group, dashboard and monthly roll-ups."""

from datetime import date

from src.domains.scoring.calculator import ScoreResult, StudentScore
from src.domains.scoring.rollup import (
    DashboardStats,
    GroupStatistics,
    TopStudent,
    dashboard_stats,
    group_rankings,
    monthly_analysis,
    rollup,
)

TODAY = date(2024, 3, 15)


def make_row(
    student_id: str,
    group_name: str = "7-A",
    total_score: float = 0.0,
    present: int = 0,
    late: int = 0,
    unexcused: int = 0,
    total_classes: int = 0,
) -> StudentScore:
    return StudentScore(
        student_id=student_id,
        name=f"Student {student_id}",
        group_name=group_name,
        join_date="",
        score=ScoreResult(
            total_score=total_score,
            present_count=present,
            late_count=late,
            unexcused_absent_count=unexcused,
            total_classes=total_classes,
        ),
    )


class TestRollup:
    """Tests for the group statistics card."""

    def test_empty_group(self) -> None:
        """Test that a group without members is all zero."""
        assert rollup([], [], []) == GroupStatistics()

    def test_counts_and_top_student(self, make_attendance, make_reward) -> None:
        """Test the full statistics card."""
        attendance = [
            make_attendance("s1", "2024-03-01", "present"),
            make_attendance("s2", "2024-03-01", "late"),
            make_attendance("s1", "2024-03-04", "present"),
            make_attendance("s2", "2024-03-04", "absent_unexcused"),
            make_attendance("outsider", "2024-03-05", "present"),
        ]
        rewards = [
            make_reward("s1", "2024-03-02", "reward", 3),
            make_reward("s2", "2024-03-06", "penalty", 1),
            make_reward("s2", "2024-03-06", "grade", 5),
            make_reward("s1", "2024-03-06", "grade", 4),
        ]

        stats = rollup(
            ["s1", "s2", "s3"],
            attendance,
            rewards,
            student_names={"s1": "Akmal"},
            today=TODAY,
        )

        assert stats.total_students == 3
        assert stats.total_lessons == 2
        assert stats.total_attendance_records == 4
        assert stats.total_rewards == 3
        assert stats.total_penalties == 1
        assert stats.last_activity_date == "2024-03-06"
        # 3 of 2 lessons x 2 students with marks
        assert stats.attendance_percentage == 75
        assert stats.average_grade == 4.5
        assert stats.top_student == TopStudent(student_id="s1", name="Akmal", score=5.0)

    def test_period_clips_events(self, make_attendance, make_reward) -> None:
        """Test that events before the period start are ignored."""
        attendance = [
            make_attendance("s1", "2024-01-10", "present"),
            make_attendance("s1", "2024-03-10", "late"),
        ]
        rewards = [make_reward("s1", "2024-01-10", "reward", 10)]

        stats = rollup(["s1"], attendance, rewards, period="1oy", today=TODAY)

        assert stats.total_lessons == 1
        assert stats.total_rewards == 0
        assert stats.top_student == TopStudent(student_id="s1", name="Unknown", score=0.5)

    def test_no_events_has_no_top_student(self) -> None:
        """Test that members without events produce no top student."""
        stats = rollup(["s1", "s2"], [], [])

        assert stats.top_student is None
        assert stats.last_activity_date is None
        assert stats.attendance_percentage == 0
        assert stats.to_dict()["total_students"] == 2


class TestDashboardStats:
    """Tests for dashboard_stats."""

    def test_empty(self) -> None:
        """Test that no students give the empty dashboard."""
        assert dashboard_stats([], []) == DashboardStats()

    def test_weighted_attendance_and_top(self, make_attendance) -> None:
        """Test average attendance over all possible marks."""
        scores = [
            make_row("s1", total_score=4, present=3, late=1, total_classes=4),
            make_row("s2", total_score=4, present=1, total_classes=4),
            make_row("s3", total_score=2.25, present=2, total_classes=2),
        ]
        attendance = [
            make_attendance("s1", "2024-03-01"),
            make_attendance("s2", "2024-03-01"),
            make_attendance("s3", "2024-03-02"),
            make_attendance("s3", "2024-01-02"),
        ]

        stats = dashboard_stats(scores, attendance, period="1_month", today=TODAY)

        assert stats.total_students == 3
        assert stats.total_classes == 2
        assert stats.average_attendance == 70.0
        # first of equal scores wins
        assert stats.top_student.student_id == "s1"
        assert stats.top_student.score == 4.0


class TestMonthlyAnalysis:
    """Tests for monthly_analysis."""

    def test_breakdown_per_month(self, make_attendance) -> None:
        """Test month buckets, oldest first."""
        attendance = [
            make_attendance("s1", "2024-02-05", "present"),
            make_attendance("s2", "2024-02-05", "late"),
            make_attendance("s1", "2024-02-06", "absent_unexcused"),
            make_attendance("s2", "2024-02-06", "absent_excused"),
            make_attendance("s1", "2024-01-09", "present"),
            make_attendance("outsider", "2024-01-09", "late"),
        ]

        months = monthly_analysis(attendance, ["s1", "s2"], today=TODAY)

        assert [m.month for m in months] == ["2024-01", "2024-02"]
        january, february = months
        assert january.total_classes == 1
        assert january.total_students == 1
        assert january.average_attendance == 100.0
        assert february.total_classes == 2
        assert february.total_students == 2
        assert february.average_attendance == 50.0
        assert february.late_percentage == 25.0
        assert february.absent_percentage == 25.0
        assert february.efficiency == february.average_attendance

    def test_period_drops_old_months(self, make_attendance) -> None:
        """Test that months before the period start disappear."""
        attendance = [
            make_attendance("s1", "2023-12-20"),
            make_attendance("s1", "2024-03-01"),
        ]

        months = monthly_analysis(attendance, ["s1"], period="1_month", today=TODAY)

        assert [m.month for m in months] == ["2024-03"]


class TestGroupRankings:
    """Tests for group_rankings."""

    def test_ranked_by_attendance(self) -> None:
        """Test that groups are ordered by attendance percentage."""
        scores = [
            make_row("s1", "7-A", present=5, late=0, unexcused=5, total_classes=10),
            make_row("s2", "7-A", present=7, late=2, unexcused=1, total_classes=10),
            make_row("s3", "8-B", present=3, late=1, total_classes=4),
            make_row("s4", "", present=1, total_classes=1),
        ]

        rankings = group_rankings(scores)

        assert [(r.group_name, r.rank) for r in rankings] == [("8-B", 1), ("7-A", 2)]
        seven_a = rankings[1]
        assert seven_a.total_students == 2
        assert seven_a.attendance_percentage == 70.0
        assert seven_a.late_percentage == 10.0
        assert seven_a.absent_percentage == 30.0
        assert seven_a.total_classes == 10
        assert seven_a.efficiency == 70.0

    def test_ties_keep_first_seen_order(self) -> None:
        """Test stable ordering of equal groups."""
        scores = [make_row("s1", "9-C"), make_row("s2", "7-A")]

        rankings = group_rankings(scores)

        assert [(r.group_name, r.rank, r.attendance_percentage) for r in rankings] == [
            ("9-C", 1, 0.0),
            ("7-A", 2, 0.0),
        ]
