"""
Daybook Backend — Asyncio Scheduler Tests
==========================================

What:  The production timer implementation, with sub-second delays.
"""

import asyncio

import pytest

from daybook.storage.scheduler import AsyncioScheduler


class TestAsyncioScheduler:

    @pytest.mark.asyncio
    async def test_call_later_fires_once(self):
        calls = []

        async def tick():
            calls.append("tick")

        handle = AsyncioScheduler().call_later(0.01, tick)
        assert handle.active is True and handle.periodic is False

        await asyncio.sleep(0.05)

        assert calls == ["tick"]
        assert handle.active is False

    @pytest.mark.asyncio
    async def test_cancel_before_due(self):
        calls = []

        async def tick():
            calls.append("tick")

        handle = AsyncioScheduler().call_later(0.05, tick)
        handle.cancel()
        handle.cancel()
        await asyncio.sleep(0.08)

        assert calls == []
        assert handle.active is False

    @pytest.mark.asyncio
    async def test_call_every_survives_failures(self):
        calls = []

        async def flaky():
            calls.append("run")
            raise RuntimeError("health check blew up")

        handle = AsyncioScheduler().call_every(0.01, flaky)
        await asyncio.sleep(0.06)
        handle.cancel()
        await asyncio.sleep(0)

        assert len(calls) >= 2
        assert handle.periodic is True
        assert handle.delay == 0.01
