"""Tests for per-key locks."""

import asyncio

import pytest

from kvstash.store.locks import KeyedLock


class TestKeyedLock:
    @pytest.mark.asyncio
    async def test_same_key_runs_in_submission_order(self):
        locks = KeyedLock()
        order = []

        async def op(name, delay):
            async with locks.hold("k"):
                order.append(f"{name}-start")
                await asyncio.sleep(delay)
                order.append(f"{name}-end")

        await asyncio.gather(op("a", 0.03), op("b", 0.0), op("c", 0.01))
        assert order == ["a-start", "a-end", "b-start", "b-end", "c-start", "c-end"]

    @pytest.mark.asyncio
    async def test_different_keys_interleave(self):
        locks = KeyedLock()
        order = []

        async def op(key, delay):
            async with locks.hold(key):
                order.append(f"{key}-start")
                await asyncio.sleep(delay)
                order.append(f"{key}-end")

        await asyncio.gather(op("x", 0.03), op("y", 0.0))
        assert order.index("y-end") < order.index("x-end")

    @pytest.mark.asyncio
    async def test_idle_locks_are_dropped(self):
        locks = KeyedLock()
        async with locks.hold("k"):
            assert locks.locked("k")
            assert len(locks) == 1
        assert not locks.locked("k")
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_released_on_error(self):
        locks = KeyedLock()
        with pytest.raises(RuntimeError):
            async with locks.hold("k"):
                raise RuntimeError("boom")
        assert len(locks) == 0
