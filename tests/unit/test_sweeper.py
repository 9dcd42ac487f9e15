import asyncio
from unittest.mock import MagicMock

import pytest

from contentguard.streaming.sweeper import OperationSweeper


class TestOperationSweeper:
    @pytest.mark.asyncio
    async def test_sweeps_periodically(self) -> None:
        manager = MagicMock()
        manager.sweep.return_value = []
        sweeper = OperationSweeper(manager, interval_seconds=0.01)

        await sweeper.start()
        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert manager.sweep.call_count >= 1
        assert not sweeper.running

    @pytest.mark.asyncio
    async def test_keeps_running_after_sweep_error(self) -> None:
        manager = MagicMock()
        calls: list[int] = []

        def sweep() -> list[str]:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return ["op1"]

        manager.sweep.side_effect = sweep
        sweeper = OperationSweeper(manager, interval_seconds=0.01)

        await sweeper.start()
        await asyncio.sleep(0.06)
        await sweeper.stop()

        assert manager.sweep.call_count >= 2

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self) -> None:
        sweeper = OperationSweeper(MagicMock(), interval_seconds=60)
        await sweeper.start()
        first_task = sweeper._task
        await sweeper.start()
        assert sweeper._task is first_task
        await sweeper.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self) -> None:
        sweeper = OperationSweeper(MagicMock(), interval_seconds=60)
        await sweeper.stop()
        assert not sweeper.running
