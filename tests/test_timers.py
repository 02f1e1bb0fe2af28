"""
Tests for cancellable timer handles.
"""

import asyncio

import pytest

from webtest.orchestration.timers import TimerHandle


class TestOneShot:

    @pytest.mark.asyncio
    async def test_fires_once(self):
        calls = []
        timer = TimerHandle("test")
        timer.schedule(0.01, lambda: calls.append("fired"))

        assert timer.active
        await asyncio.sleep(0.05)

        assert calls == ["fired"]
        assert not timer.active

    @pytest.mark.asyncio
    async def test_reschedule_replaces_pending(self):
        calls = []
        timer = TimerHandle("test")
        timer.schedule(0.02, lambda: calls.append("first"))
        timer.schedule(0.02, lambda: calls.append("second"))

        await asyncio.sleep(0.06)

        assert calls == ["second"]

    @pytest.mark.asyncio
    async def test_cancel(self):
        calls = []
        timer = TimerHandle("test")
        timer.schedule(0.01, lambda: calls.append("fired"))
        timer.cancel()
        timer.cancel()  # idempotent

        await asyncio.sleep(0.03)

        assert calls == []
        assert not timer.active

    @pytest.mark.asyncio
    async def test_cancel_does_not_abort_running_callback(self):
        finished = asyncio.Event()
        timer = TimerHandle("test")

        async def callback():
            timer.cancel()
            await asyncio.sleep(0.01)
            finished.set()

        timer.schedule(0.0, callback)
        await asyncio.wait_for(finished.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_callback_error_is_contained(self):
        calls = []
        timer = TimerHandle("test")

        def broken():
            raise RuntimeError("boom")

        timer.schedule(0.0, broken)
        await asyncio.sleep(0.02)
        timer.schedule(0.0, lambda: calls.append("ok"))
        await asyncio.sleep(0.02)

        assert calls == ["ok"]


class TestInterval:

    @pytest.mark.asyncio
    async def test_repeats_until_cancelled(self):
        calls = []
        timer = TimerHandle("poll")
        timer.schedule_every(0.01, lambda: calls.append(1))

        await asyncio.sleep(0.055)
        timer.cancel()
        count = len(calls)
        await asyncio.sleep(0.03)

        assert count >= 2
        assert len(calls) == count
        assert not timer.active

    @pytest.mark.asyncio
    async def test_cancel_from_inside_callback(self):
        calls = []
        timer = TimerHandle("poll")

        async def callback():
            calls.append(1)
            timer.cancel()
            await asyncio.sleep(0)
            calls.append(2)

        timer.schedule_every(0.01, callback)
        await asyncio.sleep(0.05)

        assert calls == [1, 2]
        assert not timer.active
