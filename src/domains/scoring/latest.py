# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Latest-result-wins gate for overlapping statistics requests.

When a caller switches filters quickly (group A, then group B) the
computation for A may finish after the one for B. The gate hands out a
token per key on every begin() and only the holder of the newest token
may publish its result.

Example:
    gate = LatestResultGate()
    try:
        scores = await gate.run(("teacher-1", "scores"), service.get_student_scores())
    except StaleResultError:
        return  # a newer request for the same key is in flight
"""

import itertools
from collections.abc import Awaitable, Hashable
from typing import TypeVar

T = TypeVar("T")


class StaleResultError(Exception):
    """Raised when a result was superseded by a newer request.

    Attributes:
        key: Request key the result belonged to.
        token: Token of the superseded request.
    """

    def __init__(self, key: Hashable, token: int) -> None:
        self.key = key
        self.token = token
        super().__init__(f"Result for {key!r} superseded (token {token})")


class LatestResultGate:
    """Tracks the newest request token per key."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._latest: dict[Hashable, int] = {}

    def begin(self, key: Hashable) -> int:
        """Start a request for key and return its token."""
        token = next(self._counter)
        self._latest[key] = token
        return token

    def is_current(self, key: Hashable, token: int) -> bool:
        """Check whether token is still the newest for key."""
        return self._latest.get(key) == token

    def discard(self, key: Hashable) -> None:
        """Forget a key, making every outstanding token for it stale."""
        self._latest.pop(key, None)

    async def run(self, key: Hashable, awaitable: Awaitable[T]) -> T:
        """Await a computation and return its result if still current.

        The key is released once the newest run for it finishes, so the
        gate only holds keys with a request in flight.

        Raises:
            StaleResultError: If begin() was called again for key while
                the computation was running.
        """
        token = self.begin(key)
        try:
            result = await awaitable
        finally:
            current = self.is_current(key, token)
            if current:
                self.discard(key)
        if not current:
            raise StaleResultError(key, token)
        return result
