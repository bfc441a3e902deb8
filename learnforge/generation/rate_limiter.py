"""
Fixed-window request limiter for outbound provider calls.

One instance is owned by each CompletionGateway (typically one per API key).
The clock is injectable so tests can advance time without sleeping.
"""
from __future__ import annotations

import math
import threading
import time
from typing import Callable

from learnforge.core.errors import RateLimitExceeded


class RateLimiter:
    """Admit at most `max_requests` calls per `window_seconds`."""

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._count = 0
        self._window_start = clock()

    @property
    def count(self) -> int:
        return self._count

    def admit(self) -> None:
        """
        Record one request.

        Raises:
            RateLimitExceeded: if the current window is full
        """
        with self._lock:
            now = self._clock()
            elapsed = now - self._window_start
            if elapsed > self.window_seconds:
                self._count = 0
                self._window_start = now
                elapsed = 0.0

            if self._count >= self.max_requests:
                retry_after = max(1, math.ceil(self.window_seconds - elapsed))
                raise RateLimitExceeded(
                    f"Rate limit exceeded. Try again in {retry_after} seconds.",
                    retry_after_seconds=retry_after,
                )

            self._count += 1

    def reset(self) -> None:
        """Start a fresh window now."""
        with self._lock:
            self._count = 0
            self._window_start = self._clock()
