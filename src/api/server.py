# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Uvicorn entry point.

Example:
    $ API_PORT=8080 scoring-api
"""

import uvicorn

from src.core.config import get_settings


def main() -> None:
    """Serve the API with host and port from settings."""
    settings = get_settings()
    uvicorn.run(
        "src.api.app:create_app",
        factory=True,
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.is_development and settings.debug,
        log_config=None,
    )


if __name__ == "__main__":
    main()
