from __future__ import annotations

import asyncio
import time

from scraperis_agent.errors import JobCancelled


class CancellationToken:
    """Caller-owned signal that stops a poll loop at its next suspension point.

    An optional deadline (seconds from creation) trips the token on its own.
    """

    def __init__(self, deadline_seconds: float | None = None) -> None:
        self._event = asyncio.Event()
        self._reason = "cancelled"
        self._deadline = (
            time.monotonic() + deadline_seconds if deadline_seconds is not None else None
        )

    def cancel(self, reason: str = "cancelled") -> None:
        self._reason = reason
        self._event.set()

    @property
    def remaining(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("deadline")
            return True
        return False

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise JobCancelled(self._reason)

    async def sleep(self, seconds: float) -> None:
        """Suspend for ``seconds`` unless cancellation arrives first."""
        self.raise_if_cancelled()
        remaining = self.remaining
        timeout = seconds if remaining is None else min(seconds, remaining)
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            pass
        self.raise_if_cancelled()
