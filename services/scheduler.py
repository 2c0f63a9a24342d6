"""
Keyed one-shot timer scheduler.

Timers are identified by a ``(TimerKind, channel_id)`` key. ``schedule``
cancels whatever is armed under the same key and arms the new timer without
yielding to the event loop, so "cancel old, arm new" cannot interleave with
another task. A fired timer runs its callback as a new task on the same loop.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from utils.logging import get_logger
from utils.tasks import spawn
from utils.types import TimerKind

logger = get_logger(__name__)

TimerKey = tuple[TimerKind, int]
TimerCallback = Callable[[], Awaitable[None]]

# Timers never fire sooner than this, even when the deadline is already past.
MIN_DELAY_MS = 1000


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class _Armed:
    handle: asyncio.TimerHandle
    due_at: int
    callback: TimerCallback


class TimerScheduler:
    """Holds at most one armed timer per key."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        self._timers: dict[TimerKey, _Armed] = {}
        self._running: set[asyncio.Task] = set()

    def schedule(self, key: TimerKey, delay_ms: int, callback: TimerCallback) -> int:
        """
        Arm ``callback`` to run after ``delay_ms``, replacing any timer under ``key``.

        Returns:
            The effective delay in milliseconds.
        """
        self.cancel(key)
        loop = asyncio.get_running_loop()
        handle = loop.call_later(delay_ms / 1000, self._fire, key)
        self._timers[key] = _Armed(handle=handle, due_at=self._clock() + delay_ms, callback=callback)
        logger.debug(
            "Armed %s timer for channel %s in %sms",
            key[0].value,
            key[1],
            delay_ms,
            extra={"channel_id": key[1], "timer_kind": key[0].value},
        )
        return delay_ms

    def cancel(self, key: TimerKey) -> bool:
        armed = self._timers.pop(key, None)
        if armed is None:
            return False
        armed.handle.cancel()
        return True

    def cancel_channel(self, channel_id: int) -> None:
        for kind in TimerKind:
            self.cancel((kind, channel_id))

    def is_scheduled(self, key: TimerKey) -> bool:
        return key in self._timers

    def due_at(self, key: TimerKey) -> int | None:
        armed = self._timers.get(key)
        return armed.due_at if armed else None

    def count(self, kind: TimerKind | None = None) -> int:
        if kind is None:
            return len(self._timers)
        return sum(1 for k in self._timers if k[0] is kind)

    def _fire(self, key: TimerKey) -> None:
        armed = self._timers.pop(key, None)
        if armed is None:
            return
        task = spawn(armed.callback(), name=f"timer-{key[0].value}-{key[1]}")
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def shutdown(self) -> None:
        """Cancel every armed timer and wait for callbacks already running."""
        for armed in self._timers.values():
            armed.handle.cancel()
        self._timers.clear()
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)
            self._running.clear()
