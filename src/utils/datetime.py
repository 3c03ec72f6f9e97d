# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Calendar-day utilities for the scoring engine.

All dates in this domain are calendar-day granular and expressed in a
fixed UTC+5 offset (Tashkent). Backends hand us timestamps in several
shapes, so every ingestion boundary goes through to_calendar_day().

Design Decisions:
-----------------
1. A calendar day is always a zero-padded ISO "yyyy-MM-dd" string
2. Naive datetimes are assumed to be UTC before conversion
3. Values that cannot be interpreted become None instead of raising

Usage:
------
    from src.utils.datetime import to_calendar_day, period_start

    to_calendar_day("2024-01-10T21:30:00Z")   # "2024-01-11"
    period_start("1_month", today=date(2024, 3, 31))   # "2024-02-29"
"""

import calendar
import re
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from functools import singledispatch
from typing import Any

TASHKENT = timezone(timedelta(hours=5), name="Asia/Tashkent")

_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_PERIOD_ALIAS = re.compile(r"^(\d{1,2})oy$")


class Period(str, Enum):
    """Relative reporting window ending today."""

    ALL = "all"
    ONE_DAY = "1_day"
    ONE_WEEK = "1_week"
    ONE_MONTH = "1_month"
    TWO_MONTHS = "2_months"
    THREE_MONTHS = "3_months"
    FOUR_MONTHS = "4_months"
    FIVE_MONTHS = "5_months"
    SIX_MONTHS = "6_months"
    SEVEN_MONTHS = "7_months"
    EIGHT_MONTHS = "8_months"
    NINE_MONTHS = "9_months"
    TEN_MONTHS = "10_months"

    @property
    def months(self) -> int:
        """Number of months covered, 0 for day/week windows and ALL."""
        head, _, unit = self.value.partition("_")
        if unit.startswith("month"):
            return int(head)
        return 0


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def tashkent_today() -> date:
    """Get today's calendar date in Tashkent."""
    return utc_now().astimezone(TASHKENT).date()


@singledispatch
def to_calendar_day(value: Any) -> str | None:
    """Normalize a date-like value into an ISO calendar day.

    Dispatches on the value's shape. Unknown shapes yield None.

    Args:
        value: ISO string, datetime, date, epoch seconds, or a serialized
            Firestore timestamp mapping ({"seconds": ..., "nanoseconds": ...}).

    Returns:
        "yyyy-MM-dd" in Tashkent time, or None when not interpretable.

    Example:
        >>> to_calendar_day(datetime(2024, 1, 10, 20, 0, tzinfo=timezone.utc))
        '2024-01-11'
    """
    return None


@to_calendar_day.register
def _(value: datetime) -> str | None:
    return ensure_utc(value).astimezone(TASHKENT).date().isoformat()


@to_calendar_day.register
def _(value: date) -> str | None:
    return value.isoformat()


@to_calendar_day.register
def _(value: str) -> str | None:
    text = value.strip()
    if not text:
        return None
    if _ISO_DAY.match(text):
        try:
            date.fromisoformat(text)
        except ValueError:
            return None
        return text
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return to_calendar_day(parsed)


@to_calendar_day.register(int)
@to_calendar_day.register(float)
def _(value: float) -> str | None:
    if isinstance(value, bool):
        return None
    try:
        instant = datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return to_calendar_day(instant)


@to_calendar_day.register
def _(value: Mapping) -> str | None:
    seconds = value.get("seconds", value.get("_seconds"))
    if not isinstance(seconds, (int, float)):
        return None
    return to_calendar_day(seconds)


def parse_period(value: "Period | str | None") -> Period:
    """Parse a period identifier, accepting the dashboard's short aliases.

    Accepts Period members, their values ("1_month"), and the aliases
    "1kun", "1hafta" and "{n}oy". Unknown values fall back to ALL.
    """
    if value is None:
        return Period.ALL
    if isinstance(value, Period):
        return value
    text = value.strip().lower()
    if text == "1kun":
        return Period.ONE_DAY
    if text == "1hafta":
        return Period.ONE_WEEK
    match = _PERIOD_ALIAS.match(text)
    if match:
        months = int(match.group(1))
        text = "1_month" if months == 1 else f"{months}_months"
    try:
        return Period(text)
    except ValueError:
        return Period.ALL


def subtract_months(day: date, months: int) -> date:
    """Move a date back by whole months, clamping to the month's last day."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def period_start(period: "Period | str | None", today: date | None = None) -> str | None:
    """Get the first calendar day included in a reporting period.

    Args:
        period: Period or alias.
        today: Reference day; defaults to today in Tashkent.

    Returns:
        ISO day string, or None for Period.ALL (no clipping).
    """
    resolved = parse_period(period)
    if resolved is Period.ALL:
        return None

    reference = today or tashkent_today()
    if resolved is Period.ONE_DAY:
        start = reference - timedelta(days=1)
    elif resolved is Period.ONE_WEEK:
        start = reference - timedelta(days=7)
    else:
        start = subtract_months(reference, resolved.months)
    return start.isoformat()


def month_key(day: str) -> str:
    """Get the "yyyy-MM" bucket of an ISO day."""
    return day[:7]
