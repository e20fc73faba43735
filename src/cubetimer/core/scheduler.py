"""Periodic callback scheduling for the timer.

The timer never sleeps or spawns threads; it asks a :class:`Scheduler` for
repeating callbacks and cancels them itself.  :class:`AsyncioScheduler`
runs them on an asyncio event loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class IntervalHandle(Protocol):
    """A running interval that can be cancelled."""

    def cancel(self) -> None:
        """Stop the interval.  Calling this more than once is harmless."""


class Scheduler(Protocol):
    """Source of repeating callbacks driven by the host event loop."""

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> IntervalHandle:
        """Invoke *callback* every *interval_ms* milliseconds until cancelled."""


class _LoopInterval:
    """A repeating ``call_later`` chain on one event loop."""

    def __init__(
        self, loop: asyncio.AbstractEventLoop, interval_ms: int, callback: Callable[[], None]
    ) -> None:
        self._loop = loop
        self._delay = interval_ms / 1000.0
        self._callback = callback
        self._cancelled = False
        self._pending: asyncio.TimerHandle = loop.call_later(self._delay, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        # Re-arm first so a callback that cancels us also cancels the next run.
        self._pending = self._loop.call_later(self._delay, self._fire)
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        self._pending.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler:
    """Schedule intervals on *loop*, or on the running loop when omitted."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> _LoopInterval:
        loop = self._loop if self._loop is not None else asyncio.get_running_loop()
        logger.debug("scheduling interval every %d ms", interval_ms)
        return _LoopInterval(loop, interval_ms, callback)
