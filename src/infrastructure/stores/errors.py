# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event store exceptions."""


class EventStoreError(Exception):
    """Base exception for event store operations.

    Attributes:
        message: Human-readable error description.
        backend: Name of the backend that failed.
        original_error: The underlying client exception.
    """

    def __init__(
        self,
        message: str,
        backend: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.backend = backend
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        prefix = f"[{self.backend}] " if self.backend else ""
        if self.original_error:
            return f"{prefix}{self.message}: {self.original_error}"
        return f"{prefix}{self.message}"


class EventStoreUnavailableError(EventStoreError):
    """Raised when the backend cannot be reached."""

    pass
