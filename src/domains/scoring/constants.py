# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scoring constants and rounding shared by every scoring call site.

Score formula:
    total_score = reward_penalty_points + attendance_points
    reward_penalty_points = mukofot_points - jarima_points
    attendance_points = present * PRESENT_POINTS + late * LATE_POINTS

Attendance percentage:
    round_half_up(100 * (present + late) / total_classes)

Grades (baho) are averaged separately and never added to total_score.
"""

from decimal import ROUND_HALF_UP, Decimal

PRESENT_POINTS = 1
LATE_POINTS = 0.5
ABSENT_POINTS = 0

RISK_ATTENDANCE_BELOW = 70
TOP_ATTENDANCE_FROM = 90

UNKNOWN_STUDENT_NAME = "Unknown"


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with halves away from zero, as dashboards display percentages.

    Python's round() uses banker's rounding, which would show 12.5% as 12.

    Args:
        value: Number to round.
        ndigits: Decimal places to keep.

    Returns:
        An int when ndigits is 0, otherwise a float.
    """
    exponent = Decimal(1).scaleb(-ndigits)
    rounded = Decimal(repr(value)).quantize(exponent, rounding=ROUND_HALF_UP)
    if ndigits == 0:
        return int(rounded)
    return float(rounded)
