import asyncio

from contentguard.logging.logger import Log
from contentguard.streaming.manager import StreamingOperationManager


class OperationSweeper:
    """Background task that periodically drops abandoned streaming operations."""

    def __init__(self, manager: StreamingOperationManager, interval_seconds: float) -> None:
        self._manager = manager
        self._interval_seconds = interval_seconds
        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            Log.warning("Operation sweeper already running")
            return
        self._running = True
        self._task = asyncio.create_task(self._run())
        Log.info(f"Started operation sweeper (interval: {self._interval_seconds}s)")

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        Log.info("Stopped operation sweeper")

    async def _run(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._interval_seconds)
                if not self._running:
                    break
                removed = self._manager.sweep()
                if removed:
                    Log.info(f"Sweep removed {len(removed)} stale operation(s)")
            except asyncio.CancelledError:
                break
            except Exception:
                Log.exception("Error in operation sweeper")
