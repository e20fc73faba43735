"""Shared fixtures: a deterministic clock-driven scheduler for the timer."""

from __future__ import annotations

from typing import Callable, Iterator
from unittest.mock import MagicMock, patch

import pytest

from cubetimer.core.timer import TimerEventHandlers, TimerStateMachine


class FakeInterval:
    def __init__(self, interval_ms: int, callback: Callable[[], None], next_due: int) -> None:
        self.interval_ms = interval_ms
        self.callback = callback
        self.next_due = next_due
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Fires intervals in due order while moving a patched monotonic clock."""

    def __init__(self, mock_time: MagicMock) -> None:
        self._time = mock_time
        self.intervals: list[FakeInterval] = []
        self._set(0)

    @property
    def now_ms(self) -> int:
        return self._now_ms

    def live(self, interval_ms: int | None = None) -> list[FakeInterval]:
        return [
            i
            for i in self.intervals
            if not i.cancelled and (interval_ms is None or i.interval_ms == interval_ms)
        ]

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> FakeInterval:
        interval = FakeInterval(interval_ms, callback, self._now_ms + interval_ms)
        self.intervals.append(interval)
        return interval

    def advance(self, ms: int) -> None:
        """Move the clock forward by *ms*, firing every interval that falls due."""
        target = self._now_ms + ms
        while True:
            due = [i for i in self.live() if i.next_due <= target]
            if not due:
                break
            interval = min(due, key=lambda i: i.next_due)
            self._set(interval.next_due)
            interval.next_due += interval.interval_ms
            interval.callback()
        self._set(target)

    def jump(self, ms: int) -> None:
        """Move the clock forward by *ms* without firing anything."""
        self._set(self._now_ms + ms)
        for interval in self.live():
            while interval.next_due <= self._now_ms:
                interval.next_due += interval.interval_ms

    def _set(self, ms: int) -> None:
        self._now_ms = ms
        self._time.monotonic.return_value = ms / 1000.0


class Recorder:
    """Collects every callback the timer emits."""

    def __init__(self) -> None:
        self.states: list = []
        self.ticks: list[int] = []
        self.inspection_ticks: list[int] = []
        self.stops: list[tuple] = []

    def handlers(self) -> TimerEventHandlers:
        return TimerEventHandlers(
            on_state_change=self.states.append,
            on_tick=self.ticks.append,
            on_inspection_tick=self.inspection_ticks.append,
            on_stop=lambda elapsed, penalty: self.stops.append((elapsed, penalty)),
        )


@pytest.fixture()
def scheduler() -> Iterator[FakeScheduler]:
    """A fake scheduler whose clock is ``cubetimer.core.timer.time.monotonic``."""
    with patch("cubetimer.core.timer.time") as mock_time:
        yield FakeScheduler(mock_time)


@pytest.fixture()
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture()
def machine(scheduler: FakeScheduler, recorder: Recorder) -> TimerStateMachine:
    """A timer with inspection disabled and the default 300 ms hold."""
    timer = TimerStateMachine(scheduler, recorder.handlers())
    timer.update_settings(inspection_enabled=False)
    return timer
