"""Student scoring and aggregation engine.

Turns attendance marks and reward/penalty/grade ledgers into per-student
scores, rankings and group statistics for a teacher dashboard.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
