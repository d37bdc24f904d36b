"""Tests for KeyedLock."""

from __future__ import annotations

import asyncio

import pytest

from srcvault.archive import KeyedLock


class TestKeyedLock:
    """Tests for per-key locking."""

    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self):
        locks = KeyedLock()
        active = 0
        peak = 0

        async def worker():
            nonlocal active, peak
            async with locks.hold("a1b2c3d"):
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1

        await asyncio.gather(*(worker() for _ in range(5)))
        assert peak == 1

    @pytest.mark.asyncio
    async def test_different_keys_run_concurrently(self):
        locks = KeyedLock()
        both_inside = asyncio.Event()
        inside = 0

        async def worker(key: str):
            nonlocal inside
            async with locks.hold(key):
                inside += 1
                if inside == 2:
                    both_inside.set()
                await asyncio.wait_for(both_inside.wait(), timeout=1)

        await asyncio.gather(worker("a"), worker("b"))

    @pytest.mark.asyncio
    async def test_locks_are_dropped_when_unused(self):
        locks = KeyedLock()
        async with locks.hold("a"):
            assert "a" in locks
        assert "a" not in locks
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self):
        locks = KeyedLock()
        with pytest.raises(RuntimeError):
            async with locks.hold("a"):
                raise RuntimeError("boom")

        async with locks.hold("a"):
            pass
        assert len(locks) == 0
