"""Timer core — a hold-to-start solve timer state machine."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from cubetimer.core.config import TimerSettings
from cubetimer.core.scheduler import IntervalHandle, Scheduler
from cubetimer.core.solve import Penalty

logger = logging.getLogger(__name__)

TICK_INTERVAL_MS = 10
INSPECTION_INTERVAL_MS = 100
DNF_OVERTIME_MS = 2000


class TimerState(Enum):
    """Possible states of the timer."""

    IDLE = "idle"
    INSPECTION = "inspection"
    READY = "ready"
    TIMING = "timing"
    STOPPED = "stopped"


_INSPECTION_START_STATES = frozenset({TimerState.IDLE, TimerState.STOPPED})


@dataclass
class TimerEventHandlers:
    """Callbacks the timer reports to.  Any of them may be left unset."""

    on_state_change: Optional[Callable[[TimerState], None]] = None
    on_tick: Optional[Callable[[int], None]] = None
    on_inspection_tick: Optional[Callable[[int], None]] = None
    on_stop: Optional[Callable[[int, Penalty], None]] = None


def _now_ms() -> int:
    return round(time.monotonic() * 1000)


class TimerStateMachine:
    """Turns hold/release input events into timed solves.

    A press in IDLE or STOPPED arms the timer (READY); releasing after the
    minimum hold either opens the inspection countdown or starts timing.
    Any press while timing stops it and reports ``(elapsed_ms, penalty)``
    through ``on_stop``.

    No method raises: calls that do not apply to the current state are
    ignored.  Periodic work runs through *scheduler*, and the machine owns
    at most one tick interval and one inspection interval at a time.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        handlers: Optional[TimerEventHandlers] = None,
        settings: Optional[TimerSettings] = None,
    ) -> None:
        self._scheduler = scheduler
        self._handlers = handlers if handlers is not None else TimerEventHandlers()
        self._settings = settings if settings is not None else TimerSettings()

        self._state: TimerState = TimerState.IDLE
        self._start_ms: Optional[int] = None
        self._inspection_start_ms: Optional[int] = None
        self._pending_penalty: Penalty = Penalty.NONE

        self._key_down: bool = False
        self._key_down_ms: int = 0

        self._tick_interval: Optional[IntervalHandle] = None
        self._inspection_interval: Optional[IntervalHandle] = None

    # -- public interface ----------------------------------------------------

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def settings(self) -> TimerSettings:
        return self._settings

    @property
    def pending_penalty(self) -> Penalty:
        """Penalty accrued during inspection, applied by the next stop()."""
        return self._pending_penalty

    def update_settings(
        self,
        inspection_duration_ms: Optional[int] = None,
        hold_duration_ms: Optional[int] = None,
        inspection_enabled: Optional[bool] = None,
    ) -> None:
        """Apply a partial settings update; unspecified fields are kept."""
        self._settings = self._settings.updated(
            inspection_duration_ms=inspection_duration_ms,
            hold_duration_ms=hold_duration_ms,
            inspection_enabled=inspection_enabled,
        )

    def handle_key_down(self, code: str, repeat: bool = False) -> None:
        """Handle a press of the primary control.  Auto-repeats are ignored."""
        if repeat or self._key_down:
            return
        self._key_down = True
        self._key_down_ms = _now_ms()

        if self._state in (TimerState.IDLE, TimerState.STOPPED, TimerState.INSPECTION):
            self._transition(TimerState.READY)
        elif self._state == TimerState.TIMING:
            self.stop()

    def handle_key_up(self, code: str) -> None:
        """Handle a release of the primary control."""
        if not self._key_down:
            return
        self._key_down = False
        if self._state != TimerState.READY:
            return

        hold_ms = _now_ms() - self._key_down_ms
        from_inspection = self._inspection_start_ms is not None

        # Releasing out of inspection starts instantly, whatever the hold.
        if from_inspection or hold_ms >= self._settings.min_hold_time_ms:
            if self._settings.inspection_enabled and not from_inspection:
                self._begin_inspection()
            else:
                self.start()
        else:
            self._transition(TimerState.INSPECTION if from_inspection else TimerState.IDLE)

    def start_inspection(self) -> None:
        """Open the inspection countdown.  Valid only from IDLE or STOPPED."""
        if self._state not in _INSPECTION_START_STATES:
            return
        self._begin_inspection()

    def start(self) -> None:
        """Start timing, carrying over any penalty accrued during inspection."""
        if self._state == TimerState.TIMING:
            return
        now = _now_ms()
        if self._inspection_interval is not None:
            self._assess_inspection(now)
        self._cancel_inspection_interval()

        self._start_ms = now
        self._transition(TimerState.TIMING)
        self._cancel_tick_interval()
        self._tick_interval = self._scheduler.call_every(TICK_INTERVAL_MS, self._on_tick_interval)

    def stop(self) -> None:
        """Stop timing and report the solve.  Valid only while TIMING."""
        if self._state != TimerState.TIMING or self._start_ms is None:
            return
        elapsed = _now_ms() - self._start_ms
        self._cancel_tick_interval()
        self._start_ms = None
        self._transition(TimerState.STOPPED)

        penalty = self._pending_penalty
        logger.debug("solve stopped: %d ms, penalty %s", elapsed, penalty.value)
        if self._handlers.on_stop is not None:
            self._handlers.on_stop(elapsed, penalty)

        self._inspection_start_ms = None
        self._pending_penalty = Penalty.NONE

    def reset(self) -> None:
        """Cancel everything in flight and return to IDLE."""
        self._cancel_tick_interval()
        self._cancel_inspection_interval()
        self._start_ms = None
        self._inspection_start_ms = None
        self._pending_penalty = Penalty.NONE
        self._transition(TimerState.IDLE)

    # -- private helpers -----------------------------------------------------

    def _begin_inspection(self) -> None:
        self._inspection_start_ms = _now_ms()
        self._pending_penalty = Penalty.NONE
        self._transition(TimerState.INSPECTION)
        self._cancel_inspection_interval()
        self._inspection_interval = self._scheduler.call_every(
            INSPECTION_INTERVAL_MS, self._on_inspection_interval
        )

    def _assess_inspection(self, now: int) -> int:
        """Update the pending penalty at *now* and return the remaining time."""
        if self._inspection_start_ms is None:
            return 0
        elapsed = now - self._inspection_start_ms
        duration = self._settings.inspection_duration_ms
        remaining = max(0, duration - elapsed)
        if remaining == 0:
            overtime = elapsed - duration
            if overtime > DNF_OVERTIME_MS:
                self._pending_penalty = Penalty.DNF
            elif self._pending_penalty is not Penalty.DNF:
                self._pending_penalty = Penalty.PLUS2
        return remaining

    def _on_inspection_interval(self) -> None:
        if self._inspection_start_ms is None:
            return
        remaining = self._assess_inspection(_now_ms())
        if self._handlers.on_inspection_tick is not None:
            self._handlers.on_inspection_tick(remaining)

    def _on_tick_interval(self) -> None:
        if self._start_ms is None:
            return
        if self._handlers.on_tick is not None:
            self._handlers.on_tick(_now_ms() - self._start_ms)

    def _cancel_tick_interval(self) -> None:
        if self._tick_interval is not None:
            self._tick_interval.cancel()
            self._tick_interval = None

    def _cancel_inspection_interval(self) -> None:
        if self._inspection_interval is not None:
            self._inspection_interval.cancel()
            self._inspection_interval = None

    def _transition(self, next_state: TimerState) -> None:
        """Enter *next_state*, notifying only on an actual change."""
        if self._state == next_state:
            return
        logger.debug("timer %s -> %s", self._state.value, next_state.value)
        self._state = next_state
        if self._handlers.on_state_change is not None:
            self._handlers.on_state_change(next_state)
