from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

PROGRESS_MAX = 100


class ProgressSink(Protocol):
    """Receives progress for one request. Delivery is fire-and-forget."""

    def notify(self, value: int, maximum: int) -> None:
        ...


class NullProgressSink:
    def notify(self, value: int, maximum: int) -> None:
        return None


class LoggingProgressSink:
    def __init__(self, label: str = "scrape") -> None:
        self.label = label

    def notify(self, value: int, maximum: int) -> None:
        logger.info("%s progress %s/%s", self.label, value, maximum)


class CallbackProgressSink:
    def __init__(self, callback: Callable[[int, int], Any]) -> None:
        self._callback = callback

    def notify(self, value: int, maximum: int) -> None:
        self._callback(value, maximum)


class QueueProgressSink:
    """Pushes progress events onto an asyncio queue, e.g. for an SSE stream."""

    def __init__(self, queue: asyncio.Queue[dict[str, Any]]) -> None:
        self.queue = queue

    def notify(self, value: int, maximum: int) -> None:
        self.queue.put_nowait({"type": "progress", "progress": value, "total": maximum})


class MonotonicProgress:
    """Guards a sink so one request's values never decrease and 100 is sent once.

    Intermediate values are capped below the maximum; only ``complete()``
    reports the maximum itself.
    """

    def __init__(self, sink: ProgressSink | None, maximum: int = PROGRESS_MAX) -> None:
        self._sink = sink or NullProgressSink()
        self.maximum = maximum
        self.last_value = 0
        self.completed = False
        self.history: list[int] = []

    def _emit(self, value: int) -> None:
        self.history.append(value)
        self.last_value = value
        try:
            self._sink.notify(value, self.maximum)
        except Exception:  # noqa: BLE001
            logger.warning("Progress sink raised; continuing", exc_info=True)

    def advance(self, value: int) -> None:
        if self.completed:
            return
        capped = min(value, self.maximum - 1)
        if capped <= self.last_value:
            return
        self._emit(capped)

    def complete(self) -> None:
        if self.completed:
            return
        self.completed = True
        self._emit(self.maximum)
