# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the score API endpoints."""

from collections.abc import Generator
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.dependencies import get_event_store, get_scoring_service
from src.domains.scoring import (
    Dashboard,
    DashboardStats,
    GroupRanking,
    GroupStatistics,
    RankedStudent,
    ScoreResult,
    ScoringService,
    SortDirection,
    SortKey,
    StatisticsUnavailableError,
    StudentScore,
    TopStudent,
)
from src.utils.datetime import Period

BASE = "/api/v1/teachers/t-1"


def make_score(student_id: str = "s1", total_score: float = 3.5) -> StudentScore:
    return StudentScore(
        student_id=student_id,
        name="Akmal",
        group_name="7-A",
        join_date="2024-01-10",
        score=ScoreResult(
            total_score=total_score,
            attendance_points=1.5,
            present_count=1,
            late_count=1,
            absent_count=1,
            total_classes=3,
            attendance_percentage=67,
            efficiency=67.0,
        ),
    )


@pytest.fixture
def service() -> MagicMock:
    mock = MagicMock(spec=ScoringService)
    mock.owner_id = "t-1"
    mock.get_rankings = AsyncMock(return_value=[RankedStudent(make_score(), 1)])
    mock.get_student_score = AsyncMock(return_value=make_score())
    mock.find_student_rank = AsyncMock(return_value=4)
    mock.get_group_statistics = AsyncMock(return_value=GroupStatistics(total_students=2))
    mock.get_group_rankings = AsyncMock(
        return_value=[
            GroupRanking(
                group_name="7-A",
                total_students=2,
                attendance_percentage=75.0,
                late_percentage=12.5,
                absent_percentage=12.5,
                total_classes=4,
                efficiency=75.0,
                rank=1,
            )
        ]
    )
    mock.get_dashboard = AsyncMock(
        return_value=Dashboard(
            stats=DashboardStats(
                total_students=1,
                total_classes=3,
                average_attendance=66.67,
                top_student=TopStudent("s1", "Akmal", 3.5),
            )
        )
    )
    return mock


@pytest.fixture
def app(service) -> Generator[FastAPI, None, None]:
    application = create_app()
    application.dependency_overrides[get_scoring_service] = lambda: service
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


class TestStudentScores:
    """Tests for the score table endpoints."""

    def test_list_scores(self, client, service) -> None:
        """Test the ranked score table shape."""
        response = client.get(f"{BASE}/students", params={"period": "1oy"})

        assert response.status_code == 200
        body = response.json()
        assert body[0]["rank_position"] == 1
        assert body[0]["student"]["score"]["attendance_percentage"] == 67
        kwargs = service.get_rankings.await_args.kwargs
        assert kwargs["period"] is Period.ONE_MONTH
        assert kwargs["sort"].key is None
        assert kwargs["date_range"] is None

    def test_sort_filters_and_range(self, client, service) -> None:
        """Test that query parameters reach the service."""
        response = client.get(
            f"{BASE}/students",
            params={
                "sort_key": "total_score",
                "quick_filter": "risk",
                "group_name": "7-A",
                "date_from": "2024-02-01",
                "date_to": "2024-02-29",
            },
        )

        assert response.status_code == 200
        kwargs = service.get_rankings.await_args.kwargs
        assert kwargs["sort"].key is SortKey.TOTAL_SCORE
        assert kwargs["sort"].direction is SortDirection.ASC
        assert kwargs["filters"].group_name == "7-A"
        assert kwargs["filters"].quick_filter.value == "risk"
        assert kwargs["date_range"] == (date(2024, 2, 1), date(2024, 2, 29))

    def test_invalid_sort_key(self, client) -> None:
        """Test that unknown sort fields are rejected."""
        response = client.get(f"{BASE}/students", params={"sort_key": "height"})

        assert response.status_code == 422

    def test_student_score(self, client) -> None:
        """Test a single student's score."""
        response = client.get(f"{BASE}/students/s1")

        assert response.status_code == 200
        assert response.json()["score"]["total_score"] == 3.5

    def test_unknown_student(self, client, service) -> None:
        """Test that unknown students are 404."""
        service.get_student_score.return_value = None

        assert client.get(f"{BASE}/students/missing").status_code == 404

    def test_rank_of_student_outside_active_list(self, client, service) -> None:
        """Test that a student with a score but no active rank is 404."""
        service.find_student_rank.return_value = None

        response = client.get(f"{BASE}/students/archived/rank")

        assert response.status_code == 404
        service.get_student_score.assert_not_awaited()

    def test_student_rank(self, client) -> None:
        """Test rank lookup."""
        response = client.get(f"{BASE}/students/s1/rank")

        assert response.json() == {"student_id": "s1", "rank": 4}


class TestRollupEndpoints:
    """Tests for group and dashboard endpoints."""

    def test_group_statistics(self, client, service) -> None:
        """Test the group card."""
        response = client.get(f"{BASE}/groups/7-A/statistics", params={"period": "1hafta"})

        assert response.status_code == 200
        assert response.json()["total_students"] == 2
        assert response.json()["top_student"] is None
        service.get_group_statistics.assert_awaited_once_with("7-A", period=Period.ONE_WEEK)

    def test_group_rankings(self, client) -> None:
        """Test group rankings."""
        response = client.get(f"{BASE}/groups/rankings")

        assert response.json()[0]["group_name"] == "7-A"
        assert response.json()[0]["rank"] == 1

    def test_dashboard(self, client) -> None:
        """Test the dashboard."""
        response = client.get(f"{BASE}/dashboard")

        body = response.json()
        assert body["stats"]["top_student"]["name"] == "Akmal"
        assert body["monthly"] == []

    def test_store_failure_is_503(self, client, service) -> None:
        """Test that read failures return the sanitized message."""
        service.get_dashboard.side_effect = StatisticsUnavailableError(
            "get_dashboard", "Statistics are temporarily unavailable. Please try again"
        )

        response = client.get(f"{BASE}/dashboard")

        assert response.status_code == 503
        assert response.json() == {
            "detail": "Statistics are temporarily unavailable. Please try again",
            "operation": "get_dashboard",
        }


class TestHealth:
    """Tests for health endpoints and request context."""

    def test_health(self, client) -> None:
        """Test liveness."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_request_id_is_echoed(self, client) -> None:
        """Test that the request id header is propagated."""
        response = client.get("/health", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"

    def test_ready_without_store(self, client) -> None:
        """Test that readiness fails before the store is opened."""
        assert client.get("/ready").status_code == 503

    def test_ready(self, app, client, mock_store) -> None:
        """Test readiness with a reachable store."""
        mock_store.health_check.return_value = True
        app.dependency_overrides[get_event_store] = lambda: mock_store

        response = client.get("/ready")

        assert response.json()["ready"] is True
        assert response.json()["store"]["status"] == "healthy"

    def test_ready_unhealthy(self, app, client, mock_store) -> None:
        """Test readiness with an unreachable store."""
        mock_store.health_check.return_value = False
        app.dependency_overrides[get_event_store] = lambda: mock_store

        body = client.get("/ready").json()

        assert body["ready"] is False
        assert body["store"]["message"] == "mock backend unreachable"
