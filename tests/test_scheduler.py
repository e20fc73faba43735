"""Tests for the asyncio-backed scheduler."""

import asyncio

from cubetimer.core.config import TimerSettings
from cubetimer.core.scheduler import AsyncioScheduler
from cubetimer.core.timer import TimerEventHandlers, TimerState, TimerStateMachine


class TestAsyncioScheduler:
    def test_interval_repeats_until_cancelled(self) -> None:
        calls = []

        async def scenario() -> None:
            handle = AsyncioScheduler().call_every(5, lambda: calls.append(1))
            await asyncio.sleep(0.06)
            handle.cancel()
            count = len(calls)
            await asyncio.sleep(0.03)
            assert len(calls) == count

        asyncio.run(scenario())
        assert len(calls) >= 2

    def test_callback_may_cancel_its_own_interval(self) -> None:
        calls = []

        async def scenario() -> None:
            def once() -> None:
                calls.append(1)
                handle.cancel()

            handle = AsyncioScheduler().call_every(5, once)
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        assert calls == [1]

    def test_cancel_is_idempotent(self) -> None:
        async def scenario() -> None:
            handle = AsyncioScheduler().call_every(5, lambda: None)
            handle.cancel()
            handle.cancel()
            assert handle.cancelled

        asyncio.run(scenario())

    def test_drives_timer_on_event_loop(self) -> None:
        ticks = []
        stops = []

        async def scenario() -> None:
            machine = TimerStateMachine(
                AsyncioScheduler(asyncio.get_running_loop()),
                TimerEventHandlers(
                    on_tick=ticks.append,
                    on_stop=lambda elapsed, penalty: stops.append(elapsed),
                ),
                TimerSettings(min_hold_time_ms=0, inspection_enabled=False),
            )
            machine.handle_key_down("Space")
            machine.handle_key_up("Space")
            assert machine.state == TimerState.TIMING
            await asyncio.sleep(0.08)
            machine.handle_key_down("Space")
            assert machine.state == TimerState.STOPPED

        asyncio.run(scenario())
        assert ticks
        assert ticks == sorted(ticks)
        assert len(stops) == 1
        assert stops[0] >= ticks[-1]
