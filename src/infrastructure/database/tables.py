# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Table definitions read by the Postgres event store.

Column names match the Firestore document fields so both backends validate
into the same models. Every table carries teacher_id; the store filters on
it in every query.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Index,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
)

metadata = MetaData()

groups = Table(
    "groups",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("teacher_id", String(128), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("is_active", Boolean, nullable=False, server_default="true"),
    Column("created_at", DateTime(timezone=True)),
)

students = Table(
    "students",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("teacher_id", String(128), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("group_name", String(255)),
    Column("group_id", String(36)),
    Column("join_date", Date),
    Column("leave_date", Date),
    Column("created_at", DateTime(timezone=True)),
    Column("is_active", Boolean, nullable=False, server_default="true"),
    Index("ix_students_teacher_group", "teacher_id", "group_name"),
)

attendance_records = Table(
    "attendance_records",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("teacher_id", String(128), nullable=False),
    Column("student_id", String(36), nullable=False),
    Column("date", Date, nullable=False),
    Column("status", String(32), nullable=False),
    Column("reason", Text),
    Index("ix_attendance_teacher_student", "teacher_id", "student_id"),
)

reward_penalty_history = Table(
    "reward_penalty_history",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("teacher_id", String(128), nullable=False),
    Column("student_id", String(36), nullable=False),
    Column("date", Date, nullable=False),
    Column("type", String(32), nullable=False),
    Column("points", Numeric(6, 2), nullable=False),
    Column("reason", Text),
    Column("created_at", DateTime(timezone=True)),
    Index("ix_reward_teacher_student", "teacher_id", "student_id"),
)
