# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Input entities consumed by the scoring engine.

Rows coming from either event store backend validate directly into these
models. Every date-like field goes through to_calendar_day() on the way in,
so the engine only ever compares zero-padded ISO day strings. Values that
cannot be interpreted degrade to None (dates, statuses, types) or 0 (points)
instead of failing validation.
"""

import math
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from src.utils.datetime import to_calendar_day


def _coerce_id(value: Any) -> Any:
    # asyncpg returns uuid.UUID for uuid columns
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _coerce_text(value: Any) -> Any:
    return "" if value is None else value


def _calendar_day(value: Any) -> str | None:
    return to_calendar_day(value)


Identifier = Annotated[str, BeforeValidator(_coerce_id)]
CalendarDay = Annotated[str | None, BeforeValidator(_calendar_day)]


class AttendanceStatus(str, Enum):
    """Attendance mark for one student on one class day."""

    PRESENT = "present"
    LATE = "late"
    ABSENT_UNEXCUSED = "absent_unexcused"
    ABSENT_EXCUSED = "absent_excused"

    @classmethod
    def _missing_(cls, value: object) -> "AttendanceStatus | None":
        aliases = {
            "absent_without_reason": cls.ABSENT_UNEXCUSED,
            "absent_with_reason": cls.ABSENT_EXCUSED,
            "absent": cls.ABSENT_UNEXCUSED,
        }
        if isinstance(value, str):
            return aliases.get(value.strip().lower())
        return None


class RewardType(str, Enum):
    """Kind of entry in the reward/penalty ledger."""

    REWARD = "reward"
    PENALTY = "penalty"
    GRADE = "grade"

    @classmethod
    def _missing_(cls, value: object) -> "RewardType | None":
        aliases = {
            "mukofot": cls.REWARD,
            "jarima": cls.PENALTY,
            "baho": cls.GRADE,
        }
        if isinstance(value, str):
            text = value.strip().lower()
            return aliases.get(text) or next((m for m in cls if m.value == text), None)
        return None


class Group(BaseModel):
    """A teacher's class group."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: Identifier
    name: Annotated[str, BeforeValidator(_coerce_text)] = ""
    is_active: bool = True


class Student(BaseModel):
    """A student as seen by the scoring engine.

    group_name is the calendar key: class days are shared by every member
    of the same group name. join_date falls back to created_at when absent.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: Identifier
    name: Annotated[str, BeforeValidator(_coerce_text)] = ""
    group_name: Annotated[str, BeforeValidator(_coerce_text)] = ""
    group_id: Annotated[str | None, BeforeValidator(_coerce_id)] = None
    join_date: CalendarDay = None
    created_at: Any = None
    leave_date: CalendarDay = None
    is_active: bool = True


class AttendanceRecord(BaseModel):
    """One attendance mark. At most one per (student, date)."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    student_id: Identifier
    date: CalendarDay = None
    status: AttendanceStatus | None = None
    reason: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _status_or_none(cls, value: Any) -> AttendanceStatus | None:
        try:
            return AttendanceStatus(value)
        except ValueError:
            return None


class RewardEvent(BaseModel):
    """One entry of the append-only reward/penalty/grade ledger."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    student_id: Identifier
    date: CalendarDay = None
    type: RewardType | None = None
    points: float = Field(default=0.0)
    reason: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _type_or_none(cls, value: Any) -> RewardType | None:
        try:
            return RewardType(value)
        except ValueError:
            return None

    @field_validator("points", mode="before")
    @classmethod
    def _points_or_zero(cls, value: Any) -> float:
        if value is None or isinstance(value, bool):
            return 0.0
        try:
            points = float(value)
        except (TypeError, ValueError):
            return 0.0
        return points if math.isfinite(points) else 0.0
