# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request logging context middleware.

Resets the structlog context variables at the start of every request and
binds a request id, so events logged while serving one request never carry
context from another.

Example:
    # Client supplied id is reused
    GET /api/v1/teachers/t-1/dashboard
    X-Request-ID: 3f1c...
"""

import logging
from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)

# Header carrying the request id
REQUEST_ID_HEADER = "X-Request-ID"


class LoggingContextMiddleware(BaseHTTPMiddleware):
    """Binds per-request logging context."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        """Process the request with a fresh logging context.

        Args:
            request: Incoming HTTP request.
            call_next: Next middleware/handler.

        Returns:
            HTTP response with the request id header set.
        """
        clear_context()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        bind_context(request_id=request_id, path=request.url.path)

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
