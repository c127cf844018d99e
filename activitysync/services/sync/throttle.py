"""Request pacing for outbound fetches.

All paced requests of a sync run share one :class:`RequestThrottle`. Requests
are dispatched one at a time in submission order, with at least
``delay_seconds`` between the start of two consecutive dispatches. Requests
may complete in any order; the throttle only controls when they start.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

Action = Callable[[], object]


@dataclass
class QueueEntry:
    """A paced action and the callback to run if it is cancelled instead."""

    action: Action
    on_cancel: Action | None = None
    dispatched: bool = False


class RequestThrottle:
    """FIFO single-flight queue with a minimum delay between dispatches.

    The head of the queue is the entry most recently dispatched; it stays
    queued until the pacing timer fires, then the next entry is dispatched.
    ``enqueue`` and ``cancel`` must be called from the event loop thread.
    """

    def __init__(
        self,
        delay_seconds: float,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.delay_seconds = max(0.0, delay_seconds)
        self._loop = loop
        self._queue: deque[QueueEntry] = deque()
        self._timer: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> int:
        """Entries queued and not yet released by the pacing timer."""
        return len(self._queue)

    @property
    def active(self) -> bool:
        return self._timer is not None

    def enqueue(self, action: Action, on_cancel: Action | None = None) -> None:
        """Queue ``action``; dispatch it immediately if nothing is queued."""
        self._queue.append(QueueEntry(action=action, on_cancel=on_cancel))
        if len(self._queue) == 1:
            self._dispatch_head()

    def cancel(self) -> None:
        """Drop every undispatched entry, running its ``on_cancel`` callback.

        Already dispatched actions are not affected. The throttle is idle
        afterwards and accepts new entries.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        while self._queue:
            entry = self._queue.popleft()
            if not entry.dispatched and entry.on_cancel is not None:
                entry.on_cancel()

    def _dispatch_head(self) -> None:
        entry = self._queue[0]
        loop = self._loop or asyncio.get_running_loop()
        # The timer is armed before the action runs.
        self._timer = loop.call_later(self.delay_seconds, self._release_head)
        entry.dispatched = True
        entry.action()

    def _release_head(self) -> None:
        self._timer = None
        self._queue.popleft()
        if self._queue:
            self._dispatch_head()


__all__ = ["Action", "QueueEntry", "RequestThrottle"]
