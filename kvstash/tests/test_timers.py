"""Tests for the expiry timer registry."""

import asyncio

import pytest

from kvstash.store.timers import ExpiryTimerRegistry


class TestExpiryTimerRegistry:
    @pytest.mark.asyncio
    async def test_fires_once_and_clears_slot(self):
        timers = ExpiryTimerRegistry()
        fired = []
        timers.arm("k", 0.01, fired.append)
        assert timers.has("k")
        await asyncio.sleep(0.05)
        assert fired == ["k"]
        assert not timers.has("k")

    @pytest.mark.asyncio
    async def test_slot_removed_before_callback(self):
        timers = ExpiryTimerRegistry()
        seen = []
        timers.arm("k", 0.01, lambda key: seen.append(timers.has(key)))
        await asyncio.sleep(0.05)
        assert seen == [False]

    @pytest.mark.asyncio
    async def test_rearm_replaces_previous_timer(self):
        timers = ExpiryTimerRegistry()
        fired = []
        timers.arm("k", 0.01, lambda key: fired.append("first"))
        timers.arm("k", 0.03, lambda key: fired.append("second"))
        assert len(timers) == 1
        await asyncio.sleep(0.08)
        assert fired == ["second"]

    @pytest.mark.asyncio
    async def test_cancel(self):
        timers = ExpiryTimerRegistry()
        fired = []
        timers.arm("k", 0.01, fired.append)
        assert timers.cancel("k") is True
        assert timers.cancel("k") is False
        await asyncio.sleep(0.05)
        assert fired == []

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        timers = ExpiryTimerRegistry()
        fired = []
        for key in ("a", "b", "c"):
            timers.arm(key, 0.01, fired.append)
        timers.cancel_all()
        await asyncio.sleep(0.05)
        assert fired == []
        assert len(timers) == 0

    @pytest.mark.asyncio
    async def test_when_reports_deadline(self):
        timers = ExpiryTimerRegistry()
        timers.arm("k", 10, lambda key: None)
        loop = asyncio.get_running_loop()
        assert timers.when("k") == pytest.approx(loop.time() + 10, abs=0.5)
        assert timers.when("other") is None
        timers.cancel_all()
