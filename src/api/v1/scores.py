# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Score and statistics API endpoints.

This module exposes the scoring service for one teacher:
- GET /students - Ranked, filtered and sorted score table
- GET /students/{student_id} - One student's score
- GET /students/{student_id}/rank - One student's rank
- GET /groups/rankings - Groups ranked by attendance efficiency
- GET /groups/{group_name}/statistics - Group statistics card
- GET /dashboard - Dashboard numbers and monthly breakdown

Example:
    GET /api/v1/teachers/t-1/students?period=1_month&sort_key=total_score&direction=desc
"""

import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from src.api.dependencies import get_scoring_service
from src.domains.scoring import (
    QuickFilter,
    ScoringService,
    SortDirection,
    SortKey,
    SortState,
    StudentFilter,
)
from src.utils.datetime import parse_period

logger = logging.getLogger(__name__)

router = APIRouter()

PeriodQuery = Annotated[
    str,
    Query(description="all, 1_day, 1_week, 1_month .. 10_months (aliases 1kun, 1hafta, 3oy)"),
]


# ============================================================================
# Response Models
# ============================================================================


class ScoreResponse(BaseModel):
    """Derived score of one student."""

    model_config = ConfigDict(from_attributes=True)

    total_score: float = Field(description="Reward/penalty balance plus attendance points")
    attendance_points: float = Field(description="Present * 1 + late * 0.5")
    mukofot_points: float = Field(description="Sum of reward points")
    jarima_points: float = Field(description="Sum of penalty points")
    baho_score: float = Field(description="Sum of grade points")
    baho_count: int = Field(description="Number of grades")
    baho_average: float = Field(description="Mean grade")
    present_count: int
    late_count: int
    absent_count: int
    excused_absent_count: int
    unexcused_absent_count: int
    total_classes: int = Field(description="Class days in the student's window")
    attendance_percentage: int
    reward_penalty_points: float
    efficiency: float


class StudentScoreResponse(BaseModel):
    """A student with the computed score."""

    model_config = ConfigDict(from_attributes=True)

    student_id: str
    name: str
    group_name: str
    join_date: str
    score: ScoreResponse


class RankedStudentResponse(BaseModel):
    """A score table row with its rank by total score."""

    model_config = ConfigDict(from_attributes=True)

    student: StudentScoreResponse
    rank_position: int = Field(description="1-based position by total score")


class StudentRankResponse(BaseModel):
    """One student's rank."""

    student_id: str
    rank: int


class TopStudentResponse(BaseModel):
    """Highest scoring student."""

    model_config = ConfigDict(from_attributes=True)

    student_id: str
    name: str
    score: float


class GroupStatisticsResponse(BaseModel):
    """Group statistics card."""

    model_config = ConfigDict(from_attributes=True)

    total_lessons: int
    total_rewards: float
    total_penalties: float
    last_activity_date: str | None
    total_students: int
    total_attendance_records: int
    attendance_percentage: int
    average_grade: float
    top_student: TopStudentResponse | None


class GroupRankingResponse(BaseModel):
    """One group's position in the efficiency ranking."""

    model_config = ConfigDict(from_attributes=True)

    group_name: str
    total_students: int
    attendance_percentage: float
    late_percentage: float
    absent_percentage: float
    total_classes: int
    efficiency: float
    rank: int


class DashboardStatsResponse(BaseModel):
    """Dashboard headline numbers."""

    model_config = ConfigDict(from_attributes=True)

    total_students: int
    total_classes: int
    average_attendance: float
    top_student: TopStudentResponse | None


class MonthlyDataResponse(BaseModel):
    """Attendance breakdown of one month."""

    model_config = ConfigDict(from_attributes=True)

    month: str = Field(description="yyyy-MM")
    total_classes: int
    total_students: int
    average_attendance: float
    late_percentage: float
    absent_percentage: float
    efficiency: float


class DashboardResponse(BaseModel):
    """Dashboard response."""

    model_config = ConfigDict(from_attributes=True)

    stats: DashboardStatsResponse
    monthly: list[MonthlyDataResponse]


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "/students",
    response_model=list[RankedStudentResponse],
    summary="Get score table",
    description="Get ranked student scores with optional filters and sorting.",
)
async def list_student_scores(
    period: PeriodQuery = "all",
    group_name: Annotated[str | None, Query()] = None,
    search: Annotated[str | None, Query()] = None,
    min_attendance: Annotated[float | None, Query(ge=0, le=100)] = None,
    max_attendance: Annotated[float | None, Query(ge=0, le=100)] = None,
    min_score: Annotated[float | None, Query()] = None,
    max_score: Annotated[float | None, Query()] = None,
    quick_filter: Annotated[QuickFilter | None, Query()] = None,
    sort_key: Annotated[SortKey | None, Query()] = None,
    direction: Annotated[SortDirection | None, Query()] = None,
    date_from: Annotated[date | None, Query()] = None,
    date_to: Annotated[date | None, Query()] = None,
    service: ScoringService = Depends(get_scoring_service),
) -> list[RankedStudentResponse]:
    """Get the score table.

    Without sort_key rows are ordered by name. rank_position is always
    the position by total score.
    """
    filters = StudentFilter(
        group_name=group_name,
        search=search,
        min_attendance=min_attendance,
        max_attendance=max_attendance,
        min_score=min_score,
        max_score=max_score,
        quick_filter=quick_filter,
    )
    sort = SortState(sort_key, direction or SortDirection.ASC) if sort_key else SortState()
    date_range = (date_from, date_to) if date_from or date_to else None

    ranked = await service.get_rankings(
        sort=sort,
        filters=filters,
        period=parse_period(period),
        date_range=date_range,
    )
    return [RankedStudentResponse.model_validate(row) for row in ranked]


@router.get(
    "/students/{student_id}",
    response_model=StudentScoreResponse,
    summary="Get student score",
)
async def get_student_score(
    student_id: str,
    period: PeriodQuery = "all",
    service: ScoringService = Depends(get_scoring_service),
) -> StudentScoreResponse:
    """Get one student's score.

    Raises:
        HTTPException: If the student does not exist.
    """
    score = await service.get_student_score(student_id, period=parse_period(period))
    if score is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found",
        )
    return StudentScoreResponse.model_validate(score)


@router.get(
    "/students/{student_id}/rank",
    response_model=StudentRankResponse,
    summary="Get student rank",
)
async def get_student_rank(
    student_id: str,
    period: PeriodQuery = "all",
    service: ScoringService = Depends(get_scoring_service),
) -> StudentRankResponse:
    """Get one student's rank among the teacher's active students.

    Raises:
        HTTPException: If the student does not exist or is archived.
    """
    rank = await service.find_student_rank(student_id, period=parse_period(period))
    if rank is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found",
        )
    return StudentRankResponse(student_id=student_id, rank=rank)


@router.get(
    "/groups/rankings",
    response_model=list[GroupRankingResponse],
    summary="Get group rankings",
)
async def get_group_rankings(
    period: PeriodQuery = "all",
    service: ScoringService = Depends(get_scoring_service),
) -> list[GroupRankingResponse]:
    """Get groups ranked by attendance efficiency."""
    rankings = await service.get_group_rankings(period=parse_period(period))
    return [GroupRankingResponse.model_validate(row) for row in rankings]


@router.get(
    "/groups/{group_name}/statistics",
    response_model=GroupStatisticsResponse,
    summary="Get group statistics",
)
async def get_group_statistics(
    group_name: str,
    period: PeriodQuery = "all",
    service: ScoringService = Depends(get_scoring_service),
) -> GroupStatisticsResponse:
    """Get the statistics card of one group."""
    stats = await service.get_group_statistics(group_name, period=parse_period(period))
    return GroupStatisticsResponse.model_validate(stats)


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Get dashboard",
)
async def get_dashboard(
    period: PeriodQuery = "all",
    group_name: Annotated[str | None, Query()] = None,
    service: ScoringService = Depends(get_scoring_service),
) -> DashboardResponse:
    """Get dashboard numbers and the monthly attendance breakdown."""
    logger.info("Getting dashboard for teacher: %s", service.owner_id)
    dashboard = await service.get_dashboard(period=parse_period(period), group_name=group_name)
    return DashboardResponse.model_validate(dashboard)
