"""Tests for scheduled tasks and the phase timer."""

import asyncio

from study_bot.services.scheduler import AsyncioScheduler, PhaseTimer


async def wait_until(condition, timeout: float = 1.0):
    for _ in range(int(timeout / 0.01)):
        if condition():
            return True
        await asyncio.sleep(0.01)
    return condition()


class TestPhaseTimer:
    """Tests for PhaseTimer against the manual clock."""

    async def test_ticks_persists_and_expires_once(self, scheduler):
        ticks, persisted, expired = [], [], []

        async def on_persist(left):
            persisted.append(left)

        async def on_expire():
            expired.append(scheduler.now())

        timer = PhaseTimer(
            scheduler,
            5,
            on_expire,
            on_tick=ticks.append,
            on_persist=on_persist,
            tick_seconds=1,
            persist_every=2,
        ).start()

        await scheduler.advance(10)

        assert ticks == [4, 3, 2, 1, 0]
        assert persisted == [3, 1]
        assert len(expired) == 1
        assert not timer.active

    async def test_deadline_survives_late_ticks(self, scheduler):
        """A stalled loop does not stretch the phase."""
        expired = []

        async def on_expire():
            expired.append(True)

        timer = PhaseTimer(scheduler, 60, on_expire, tick_seconds=1).start()
        scheduler.jump(45)

        assert timer.time_left() == 15
        await scheduler.advance(15)
        assert expired == [True]

    async def test_cancel_stops_everything(self, scheduler):
        expired = []

        async def on_expire():
            expired.append(True)

        timer = PhaseTimer(scheduler, 3, on_expire).start()
        timer.cancel()
        await scheduler.advance(10)

        assert expired == []
        assert scheduler.pending == []

    def test_negative_duration_clamped(self, scheduler):
        async def on_expire():
            pass

        timer = PhaseTimer(scheduler, -5, on_expire)

        assert timer.duration == 0
        assert timer.time_left() == 0


class TestAsyncioScheduler:
    """Tests for the event-loop scheduler."""

    async def test_callback_can_cancel_its_own_task(self):
        scheduler = AsyncioScheduler()
        calls = []

        async def callback():
            calls.append(True)
            if len(calls) == 3:
                handle.cancel()
                # Still running after cancelling itself
                await asyncio.sleep(0)
                calls.append("after")

        handle = scheduler.call_every(0.01, callback)

        assert await wait_until(lambda: handle.cancelled and "after" in calls)
        await asyncio.sleep(0.05)
        assert calls == [True, True, True, "after"]

    async def test_second_cancel_does_not_interrupt_running_callback(self):
        scheduler = AsyncioScheduler()
        release = asyncio.Event()
        calls = []

        async def callback():
            handle.cancel()
            calls.append("cancelled")
            await release.wait()
            calls.append("finished")

        handle = scheduler.call_every(0.01, callback)
        assert await wait_until(lambda: "cancelled" in calls)

        # Another owner cancelling while the callback awaits
        handle.cancel()
        release.set()

        assert await wait_until(lambda: "finished" in calls)
        assert calls == ["cancelled", "finished"]

    async def test_errors_do_not_stop_recurring_task(self):
        scheduler = AsyncioScheduler()
        calls = []

        async def callback():
            calls.append(True)
            raise RuntimeError("flaky")

        handle = scheduler.call_every(0.01, callback)

        assert await wait_until(lambda: len(calls) >= 2)
        handle.cancel()

    async def test_call_soon_runs_once(self):
        scheduler = AsyncioScheduler()
        calls = []

        async def callback():
            calls.append(True)

        handle = scheduler.call_soon(callback)

        assert await wait_until(lambda: handle.cancelled)
        assert calls == [True]
