# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class calendar construction.

A group's class calendar is the set of days on which at least one member
of the group has an attendance mark. It is the operational definition of
"a class happened" and the denominator of every attendance percentage.
"""

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from src.domains.scoring.models import AttendanceRecord, Student
from src.utils.datetime import to_calendar_day

ClassCalendar = dict[str, set[str]]
GroupOf = Callable[[str], str | None] | Mapping[str, str]
DateRange = tuple[Any, Any]


def group_lookup(students: Iterable[Student]) -> dict[str, str]:
    """Map student ids to their current group name, skipping ungrouped students."""
    return {student.id: student.group_name for student in students if student.group_name}


def _resolver(group_of: GroupOf) -> Callable[[str], str | None]:
    if isinstance(group_of, Mapping):
        return group_of.get
    return group_of


def _bounds(date_range: DateRange | None) -> tuple[str | None, str | None]:
    if date_range is None:
        return None, None
    start, end = date_range
    return to_calendar_day(start), to_calendar_day(end)


def build_calendar(
    records: Iterable[AttendanceRecord],
    group_of: GroupOf,
    date_range: DateRange | None = None,
    groups: Iterable[str] = (),
) -> ClassCalendar:
    """Derive the class days of every group from attendance records.

    Records whose student cannot be resolved to a group (archived or deleted
    students) and records without a usable date are skipped.

    Args:
        records: Attendance records across any number of groups.
        group_of: Callable or mapping from student id to group name.
        date_range: Optional inclusive (from, to) window; either end may be None.
        groups: Group names to include even when they have no class days.

    Returns:
        Mapping of group name to the set of ISO class days.
    """
    resolve = _resolver(group_of)
    start, end = _bounds(date_range)

    calendar: ClassCalendar = {name: set() for name in groups if name}
    for record in records:
        day = record.date
        if day is None:
            continue
        # ISO days compare correctly as strings
        if start is not None and day < start:
            continue
        if end is not None and day > end:
            continue
        group_name = resolve(record.student_id)
        if not group_name:
            continue
        calendar.setdefault(group_name, set()).add(day)
    return calendar
