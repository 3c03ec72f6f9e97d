# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Calendar-day normalization and reporting periods
"""

from src.utils.datetime import (
    TASHKENT,
    Period,
    ensure_utc,
    month_key,
    parse_period,
    period_start,
    subtract_months,
    tashkent_today,
    to_calendar_day,
    utc_now,
)
from src.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # Datetime
    "TASHKENT",
    "Period",
    "utc_now",
    "ensure_utc",
    "tashkent_today",
    "to_calendar_day",
    "parse_period",
    "period_start",
    "subtract_months",
    "month_key",
]
