# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.

Modules:
    scores: Student scores, rankings, group statistics and dashboard.
"""

from fastapi import APIRouter

from src.api.v1 import scores

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(scores.router, prefix="/teachers/{teacher_id}", tags=["Scores"])

__all__ = ["router"]
