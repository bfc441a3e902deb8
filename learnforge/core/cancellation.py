"""
Cancellation token with an optional deadline.

The orchestrator and the gateway check the token before every provider call
and wait on it instead of sleeping directly, so a cancelled or expired token
interrupts a pending backoff or inter-chunk delay.
"""
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional

from learnforge.core.errors import GenerationCancelled

Sleep = Callable[[float], Awaitable[None]]


class CancellationToken:
    """Cooperative cancellation for one generate() call."""

    def __init__(
        self,
        deadline_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            deadline_seconds: Seconds from now after which the token expires (None = no deadline)
            clock: Monotonic clock, injectable for tests
        """
        self._clock = clock
        self._deadline = clock() + deadline_seconds if deadline_seconds is not None else None
        self._cancelled = False
        self._event: asyncio.Event | None = None
        self.reason: str | None = None

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self._cancelled = True
        self.reason = reason
        if self._event is not None:
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def expired(self) -> bool:
        return self._deadline is not None and self._clock() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise GenerationCancelled(f"Generation cancelled: {self.reason}")
        if self.expired:
            raise GenerationCancelled("Generation deadline exceeded")

    async def wait(self, seconds: float, sleep: Sleep = asyncio.sleep) -> None:
        """
        Wait for `seconds`, returning early with GenerationCancelled on cancel/deadline.

        Raises:
            GenerationCancelled: if the token is (or becomes) cancelled or expired
        """
        self.raise_if_cancelled()
        if seconds <= 0:
            return

        remaining = self.remaining()
        if remaining is not None and seconds >= remaining:
            # The wait would outlive the deadline
            await sleep(remaining)
            self.raise_if_cancelled()
            raise GenerationCancelled("Generation deadline exceeded")

        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()

        sleep_task = asyncio.ensure_future(sleep(seconds))
        cancel_task = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({sleep_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleep_task, cancel_task):
                if not task.done():
                    task.cancel()
        self.raise_if_cancelled()


def ensure_token(token: Optional[CancellationToken]) -> CancellationToken:
    """Return the caller's token or a fresh one that never fires."""
    return token if token is not None else CancellationToken()
