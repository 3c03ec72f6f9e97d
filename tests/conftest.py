# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Model factories for students, attendance records and reward events
- A mocked event store
- A fixed reference day for period calculations
"""

from collections.abc import Callable, Generator
from datetime import date
from typing import Any
from unittest.mock import AsyncMock

import pytest

from src.core.config import clear_settings_cache
from src.domains.scoring.models import AttendanceRecord, RewardEvent, Student
from src.infrastructure.stores.base import EventStore


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_environment() -> dict[str, str]:
    """Provide test environment variables.

    Returns:
        Dictionary of environment variables for testing.
    """
    return {
        "ENVIRONMENT": "development",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
        "STORE_BACKEND": "postgres",
        "POSTGRES_USER": "scoring",
        "POSTGRES_PASSWORD": "scoring_test_password",
        "POSTGRES_DATABASE": "scoring_test",
        "FIRESTORE_PROJECT_ID": "demo-project",
        "FIRESTORE_EMULATOR_HOST": "localhost:8080",
    }


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Drop cached settings between tests."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_teacher_id() -> str:
    """Provide a sample teacher ID for testing."""
    return "teacher-550e8400"


@pytest.fixture
def today() -> date:
    """Provide a fixed reference day."""
    return date(2024, 3, 15)


@pytest.fixture
def make_student() -> Callable[..., Student]:
    """Provide a Student factory."""

    def _make(student_id: str, group_name: str = "7-A", **fields: Any) -> Student:
        data: dict[str, Any] = {
            "id": student_id,
            "name": fields.pop("name", f"Student {student_id}"),
            "group_name": group_name,
        }
        data.update(fields)
        return Student.model_validate(data)

    return _make


@pytest.fixture
def make_attendance() -> Callable[..., AttendanceRecord]:
    """Provide an AttendanceRecord factory."""

    def _make(student_id: str, day: Any, status: str = "present", **fields: Any) -> AttendanceRecord:
        return AttendanceRecord.model_validate(
            {"student_id": student_id, "date": day, "status": status, **fields}
        )

    return _make


@pytest.fixture
def make_reward() -> Callable[..., RewardEvent]:
    """Provide a RewardEvent factory."""

    def _make(student_id: str, day: Any, type_: str, points: Any, **fields: Any) -> RewardEvent:
        return RewardEvent.model_validate(
            {"student_id": student_id, "date": day, "type": type_, "points": points, **fields}
        )

    return _make


@pytest.fixture
def mock_store() -> AsyncMock:
    """Create a mocked event store returning no data."""
    store = AsyncMock(spec=EventStore)
    store.backend_name = "mock"
    store.fetch_students.return_value = []
    store.fetch_groups.return_value = []
    store.fetch_attendance.return_value = []
    store.fetch_reward_events.return_value = []
    return store
