import time
from unittest.mock import AsyncMock

import pytest

from contentguard.analysis.loader import AnalyzerLoader
from contentguard.config.settings import Settings
from contentguard.recovery.manager import ErrorManager
from contentguard.service.service import ContentGuardService, build_service
from contentguard.streaming.exceptions import FinalizeError
from contentguard.streaming.manager import StreamingOperationManager


def _make_service(settings: Settings, engine: str = "streaming") -> ContentGuardService:
    loader = AnalyzerLoader(engine)
    manager = StreamingOperationManager(loader, settings)
    return ContentGuardService(manager, loader, ErrorManager(sleep=AsyncMock()))


def _init(operation_id: str = "op1", size: int = 1024, **extra) -> dict:
    return {
        "type": "STREAM_INIT",
        "operation_id": operation_id,
        "file": {"name": "a.txt", "size": size, "type": "text/plain"},
        **extra,
    }


def _chunk(chunk: str, operation_id: str = "op1", **extra) -> dict:
    return {"type": "STREAM_CHUNK", "operation_id": operation_id, "chunk": chunk, **extra}


def _finalize(operation_id: str = "op1", **extra) -> dict:
    return {"type": "STREAM_FINALIZE", "operation_id": operation_id, **extra}


class TestStartup:
    @pytest.mark.asyncio
    async def test_start_loads_module(self, settings) -> None:
        service = _make_service(settings)
        await service.start()
        status = await service.handle({"type": "GET_STATUS"})
        assert status["status"] == "ready"
        assert status["module_loaded"] is True
        assert status["module_status"] == "loaded"
        assert status["active_operations"] == 0
        assert status["error_stats"]["total"] == 0

    @pytest.mark.asyncio
    async def test_unavailable_module_falls_back(self, settings) -> None:
        service = _make_service(settings, engine="gpu")
        await service.start()

        status = await service.handle({"type": "GET_STATUS"})
        assert status["module_status"] == "fallback"
        assert status["module_loaded"] is True
        stats = status["error_stats"]
        assert stats["total"] == 3
        assert stats["by_severity"] == {"critical": 3}
        assert stats["recovered"] == 3

        await service.handle(_init())
        await service.handle(_chunk("secret stuff"))
        response = await service.handle(_finalize())
        assert response["result"]["engine"] == "basic"

    @pytest.mark.asyncio
    async def test_build_service_starts_and_stops_sweeper(self, settings) -> None:
        service = build_service(settings)
        await service.start()
        await service.stop()


class TestStreamingFlow:
    @pytest.mark.asyncio
    async def test_init_chunk_finalize(self, settings) -> None:
        service = _make_service(settings)
        await service.start()

        init = await service.handle(_init(request_id=7))
        assert init["success"] is True
        assert init["operation"]["state"] == "processing"
        assert init["operation"]["sequence"] == 0
        assert init["request_id"] == 7

        chunk = await service.handle(
            _chunk("This contains confidential information that should be blocked", sequence=0)
        )
        assert chunk["success"] is True
        assert chunk["sequence"] == 1
        assert chunk["operation_state"] == "processing"
        assert chunk["progress"]["stats"]["banned_phrase_count"] == 1
        assert chunk["backpressure"]["pause"] is False

        final = await service.handle(_finalize())
        assert final["success"] is True
        assert final["result"]["decision"] == "block"
        assert final["result"]["risk_score"] > 0.6

    @pytest.mark.asyncio
    async def test_init_with_config(self, settings) -> None:
        service = _make_service(settings)
        response = await service.handle(_init(config={"preset": "low_security"}))
        assert response["operation"]["config"]["risk_threshold"] == 0.9

    @pytest.mark.asyncio
    async def test_chunk_timeout_recovers_with_fallback(self) -> None:
        settings = Settings(_env_file=None, operation_timeout_seconds=0.05)
        service = _make_service(settings)
        await service.handle(_init())
        operation = service._manager.get("op1")
        original_stage = operation.session.stage

        def slow_stage(text):
            time.sleep(0.2)
            return original_stage(text)

        operation.session.stage = slow_stage
        response = await service.handle(_chunk("secret words "))

        assert response["success"] is True
        assert response["fallback_used"] is True
        assert response["progress"]["stats"]["banned_phrase_count"] == 1
        assert operation.engine == "basic"
        log = (await service.handle({"type": "GET_ERROR_LOG"}))["error_log"]
        assert [r["type"] for r in log] == ["timeout_error"] * 3


class TestFailures:
    @pytest.mark.asyncio
    async def test_file_too_large(self, settings) -> None:
        service = _make_service(settings)
        response = await service.handle(_init(size=100 * 1024 * 1024 + 1))
        assert response["success"] is False
        assert response["error"]["code"] == "FILE_TOO_LARGE"
        assert response["retryable"] is False
        assert response["error"]["timestamp"] > 0

        log = (await service.handle({"type": "GET_ERROR_LOG"}))["error_log"]
        assert log[0]["type"] == "file_error"
        assert log[0]["recovered"] is False

    @pytest.mark.asyncio
    async def test_duplicate_init(self, settings) -> None:
        service = _make_service(settings)
        await service.handle(_init())
        response = await service.handle(_init())
        assert response["error"]["code"] == "OPERATION_EXISTS"

    @pytest.mark.asyncio
    async def test_chunk_for_unknown_operation(self, settings) -> None:
        service = _make_service(settings)
        response = await service.handle(_chunk("data", operation_id="ghost"))
        assert response["success"] is False
        assert response["error"]["code"] == "OPERATION_NOT_FOUND"
        assert "not found" in response["error"]["message"]

    @pytest.mark.asyncio
    async def test_finalize_unknown_operation(self, settings) -> None:
        service = _make_service(settings)
        response = await service.handle(_finalize("ghost"))
        assert response["success"] is False
        assert "not found" in response["error"]["message"]

    @pytest.mark.asyncio
    async def test_sequence_mismatch(self, settings) -> None:
        service = _make_service(settings)
        await service.handle(_init())
        response = await service.handle(_chunk("data", sequence=4))
        assert response["error"]["code"] == "SEQUENCE_MISMATCH"
        assert response["retryable"] is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("force", "retryable"), [(False, True), (True, False)])
    async def test_finalize_failure_retryable_unless_forced(
        self, settings, force, retryable
    ) -> None:
        service = _make_service(settings)

        async def failing_finalize(operation_id, *, force=False, degraded=False):
            raise FinalizeError("Finalize failed", retryable=not force)

        service._manager.finalize = failing_finalize
        response = await service.handle(_finalize(force=force))
        assert response["success"] is False
        assert response["error"]["code"] == "STREAM_FINALIZE_FAILED"
        assert response["retryable"] is retryable

    @pytest.mark.asyncio
    async def test_unclassified_failure_is_ignored(self, settings) -> None:
        service = _make_service(settings)
        service._manager.init = AsyncMock(side_effect=RuntimeError("odd glitch"))
        response = await service.handle(_init())
        assert response["success"] is True
        assert response["ignored"] is True


class TestSmallFile:
    @pytest.mark.asyncio
    async def test_analyze_file(self, settings) -> None:
        service = _make_service(settings)
        response = await service.handle(
            {
                "type": "ANALYZE_FILE",
                "content": "This is safe content with no security concerns",
                "fileName": "a.txt",
            }
        )
        assert response["success"] is True
        assert response["result"]["decision"] == "allow"
        assert response["result"]["reasons"] == ["No security concerns detected"]

    @pytest.mark.asyncio
    async def test_analyze_file_too_large(self) -> None:
        service = _make_service(Settings(_env_file=None, chunk_size_bytes=4))
        response = await service.handle({"type": "ANALYZE_FILE", "content": "too long"})
        assert response["error"]["code"] == "CONTENT_TOO_LARGE"


class TestMessages:
    @pytest.mark.asyncio
    async def test_invalid_message(self, settings) -> None:
        response = await _make_service(settings).handle({"type": "STREAM_CHUNK"})
        assert response["error"]["code"] == "INVALID_MESSAGE"
        assert response["retryable"] is False

    @pytest.mark.asyncio
    async def test_unknown_type(self, settings) -> None:
        response = await _make_service(settings).handle({"type": "REBOOT", "request_id": "r1"})
        assert response["error"]["code"] == "UNKNOWN_MESSAGE"
        assert response["request_id"] == "r1"

    @pytest.mark.asyncio
    async def test_non_object_message(self, settings) -> None:
        response = await _make_service(settings).handle(["STREAM_INIT"])
        assert response["error"]["code"] == "INVALID_MESSAGE"

    @pytest.mark.asyncio
    async def test_clear_error_log(self, settings) -> None:
        service = _make_service(settings)
        await service.handle(_chunk("data", operation_id="ghost"))
        await service.handle({"type": "CLEAR_ERROR_LOG"})
        response = await service.handle({"type": "GET_ERROR_LOG"})
        assert response["error_log"] == []
        assert response["error_stats"]["total"] == 0
