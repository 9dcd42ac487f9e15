import asyncio
import json
import sys
from typing import Any, TextIO

from contentguard.logging.logger import Log
from contentguard.service.service import ContentGuardService, failure_response


class Worker:
    """Read loop: one JSON message per input line, one JSON response per output line."""

    def __init__(
        self,
        service: ContentGuardService,
        input_stream: TextIO | None = None,
        output_stream: TextIO | None = None,
    ) -> None:
        self._service = service
        self._input = input_stream or sys.stdin
        self._output = output_stream or sys.stdout

    async def run(self, max_messages: int | None = None) -> None:
        """Main read loop. Runs until input is exhausted or interrupted.

        If max_messages is set, stop after handling that many messages (for testing).
        """
        await self._service.start()
        Log.info("Worker started, reading messages")
        handled = 0
        try:
            while max_messages is None or handled < max_messages:
                line = await asyncio.to_thread(self._input.readline)
                if not line:
                    Log.info("Input closed")
                    break
                if not line.strip():
                    continue
                response = await self._dispatch(line)
                self._write(response)
                handled += 1
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")
        finally:
            await self._service.stop()

    async def _dispatch(self, line: str) -> dict[str, Any]:
        try:
            message = json.loads(line)
        except json.JSONDecodeError as exc:
            Log.warning(f"Malformed message: {exc}")
            return failure_response("INVALID_MESSAGE", f"Malformed JSON: {exc}", retryable=False)
        return await self._service.handle(message)

    def _write(self, response: dict[str, Any]) -> None:
        self._output.write(json.dumps(response) + "\n")
        self._output.flush()
