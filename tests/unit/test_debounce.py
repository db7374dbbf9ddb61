"""Unit tests for src/dev/debounce.py"""
import asyncio

import pytest

from src.dev.debounce import DebounceTimer


@pytest.mark.unit
class TestDebounceTimer:
    @pytest.mark.asyncio
    async def test_fires_once_after_quiet_period(self):
        fired = []
        timer = DebounceTimer(0.05, lambda: fired.append(1))
        timer.arm()
        assert timer.pending
        await asyncio.sleep(0.1)
        assert fired == [1]
        assert not timer.pending

    @pytest.mark.asyncio
    async def test_rearm_collapses_burst(self):
        fired = []
        timer = DebounceTimer(0.05, lambda: fired.append(1))
        for _ in range(5):
            timer.arm()
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.1)
        assert fired == [1]

    @pytest.mark.asyncio
    async def test_rearm_pushes_deadline_back(self):
        fired = []
        timer = DebounceTimer(0.05, lambda: fired.append(1))
        timer.arm()
        await asyncio.sleep(0.03)
        timer.arm()
        await asyncio.sleep(0.03)
        assert fired == []
        await asyncio.sleep(0.05)
        assert fired == [1]

    @pytest.mark.asyncio
    async def test_cancel(self):
        fired = []
        timer = DebounceTimer(0.02, lambda: fired.append(1))
        timer.arm()
        timer.cancel()
        await asyncio.sleep(0.05)
        assert fired == []
        assert not timer.pending

    def test_arm_requires_running_loop(self):
        timer = DebounceTimer(0.01, lambda: None)
        with pytest.raises(RuntimeError):
            timer.arm()
