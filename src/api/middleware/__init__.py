# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware package.

Modules:
    logging_context: Per-request structlog context (request id, path).
"""

from src.api.middleware.logging_context import REQUEST_ID_HEADER, LoggingContextMiddleware

__all__ = ["LoggingContextMiddleware", "REQUEST_ID_HEADER"]
