import time
from collections.abc import Awaitable, Callable
from typing import Any

from contentguard.analysis.base import BaseAnalyzer
from contentguard.analysis.loader import AnalyzerLoader
from contentguard.config.settings import Settings
from contentguard.logging.logger import Log
from contentguard.recovery.classifier import MODULE_INIT_OPERATION
from contentguard.recovery.manager import ErrorManager
from contentguard.recovery.models import RecoveryResult
from contentguard.service import validator
from contentguard.service.exceptions import MessageValidationError, UnknownMessageError
from contentguard.service.messages import MessageType
from contentguard.streaming.manager import StreamingOperationManager
from contentguard.streaming.sweeper import OperationSweeper

Response = dict[str, Any]


class ContentGuardService:
    """Dispatches message dicts to the streaming manager under error recovery.

    Each fallible handler runs through the error manager with a degraded
    fallback. Only aborted or exhausted failures reach the caller, as
    ``{success: False, error: {code, message, timestamp}, retryable}``.
    """

    def __init__(
        self,
        manager: StreamingOperationManager,
        loader: AnalyzerLoader,
        errors: ErrorManager,
        sweeper: OperationSweeper | None = None,
    ) -> None:
        self._manager = manager
        self._loader = loader
        self._errors = errors
        self._sweeper = sweeper
        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[Response]]] = {
            MessageType.STREAM_INIT.value: self._stream_init,
            MessageType.STREAM_CHUNK.value: self._stream_chunk,
            MessageType.STREAM_FINALIZE.value: self._stream_finalize,
            MessageType.ANALYZE_FILE.value: self._analyze_file,
            MessageType.GET_STATUS.value: self._get_status,
            MessageType.GET_ERROR_LOG.value: self._get_error_log,
            MessageType.CLEAR_ERROR_LOG.value: self._clear_error_log,
        }

    @property
    def errors(self) -> ErrorManager:
        return self._errors

    async def start(self) -> None:
        """Load the analysis module (falling back to the basic engine) and start sweeping."""
        result = await self._errors.execute(
            MODULE_INIT_OPERATION, self._loader.load, fallback=self._activate_fallback
        )
        if not result.recovered:
            Log.error(f"Analysis module unavailable: {result.message}")
        if self._sweeper is not None:
            await self._sweeper.start()
        Log.info("Content guard service started", module_status=self._loader.status)

    async def stop(self) -> None:
        if self._sweeper is not None:
            await self._sweeper.stop()
        Log.info("Content guard service stopped")

    async def handle(self, message: Any) -> Response:
        try:
            if not isinstance(message, dict):
                raise MessageValidationError("Message must be an object")
            message_type = message.get("type")
            handler = (
                self._handlers.get(message_type) if isinstance(message_type, str) else None
            )
            if handler is None:
                raise UnknownMessageError(f"Unknown message type: {message_type!r}")
            response = await handler(message)
        except MessageValidationError as exc:
            Log.warning(f"Rejected message: {exc}")
            response = failure_response(exc.code, str(exc), retryable=False)
        if isinstance(message, dict) and "request_id" in message:
            response["request_id"] = message["request_id"]
        return response

    async def _stream_init(self, message: dict[str, Any]) -> Response:
        request = validator.parse_init(message, self._manager.default_config)
        result = await self._errors.execute(
            "stream_init",
            lambda: self._manager.init(request.operation_id, request.file_meta, request.config),
            fallback=lambda: self._manager.init(
                request.operation_id, request.file_meta, request.config, degraded=True
            ),
            metadata={"operation_id": request.operation_id},
        )
        if not result.recovered:
            return _failure_from(result, "STREAM_INIT_FAILED")
        if result.value is None:
            return _ignored(result)
        return {
            "success": True,
            "operation": result.value.summary(),
            "fallback_used": result.fallback_used,
        }

    async def _stream_chunk(self, message: dict[str, Any]) -> Response:
        request = validator.parse_chunk(message)

        def attempt(degraded: bool) -> Callable[[], Awaitable[Any]]:
            return lambda: self._manager.process_chunk(
                request.operation_id,
                request.chunk,
                sequence=request.sequence,
                degraded=degraded,
            )

        result = await self._errors.execute(
            "stream_chunk",
            attempt(False),
            fallback=attempt(True),
            metadata={"operation_id": request.operation_id},
        )
        if not result.recovered:
            return _failure_from(result, "STREAM_CHUNK_FAILED")
        if result.value is None:
            return _ignored(result)
        return {"success": True, **result.value.to_dict(), "fallback_used": result.fallback_used}

    async def _stream_finalize(self, message: dict[str, Any]) -> Response:
        request = validator.parse_finalize(message)
        result = await self._errors.execute(
            "stream_finalize",
            lambda: self._manager.finalize(request.operation_id, force=request.force),
            fallback=lambda: self._manager.finalize(
                request.operation_id, force=request.force, degraded=True
            ),
            metadata={"operation_id": request.operation_id},
        )
        if not result.recovered:
            response = _failure_from(result, "STREAM_FINALIZE_FAILED")
            response["retryable"] = response["retryable"] and not request.force
            return response
        if result.value is None:
            return _ignored(result)
        return {"success": True, "result": result.value.to_dict()}

    async def _analyze_file(self, message: dict[str, Any]) -> Response:
        request = validator.parse_analyze(message)
        result = await self._errors.execute(
            "analyze_file",
            lambda: self._manager.analyze_content(request.content, request.file_name),
            fallback=lambda: self._manager.analyze_content(
                request.content, request.file_name, degraded=True
            ),
            metadata={"file_name": request.file_name},
        )
        if not result.recovered:
            return _failure_from(result, "ANALYSIS_FAILED")
        if result.value is None:
            return _ignored(result)
        return {"success": True, "result": result.value.to_dict()}

    async def _get_status(self, message: dict[str, Any]) -> Response:
        return {
            "success": True,
            "status": "ready",
            "module_loaded": self._loader.is_loaded,
            "module_status": self._loader.status,
            "error_stats": self._errors.get_error_stats().to_dict(),
            "active_operations": self._manager.active_count,
        }

    async def _get_error_log(self, message: dict[str, Any]) -> Response:
        return {
            "success": True,
            "error_log": [record.to_dict() for record in self._errors.get_error_log()],
            "error_stats": self._errors.get_error_stats().to_dict(),
        }

    async def _clear_error_log(self, message: dict[str, Any]) -> Response:
        self._errors.clear()
        return {"success": True}

    async def _activate_fallback(self) -> BaseAnalyzer:
        return self._loader.activate_fallback()


def failure_response(code: str, message: str, *, retryable: bool) -> Response:
    return {
        "success": False,
        "error": {"code": code, "message": message, "timestamp": int(time.time() * 1000)},
        "retryable": retryable,
    }


def _failure_from(result: RecoveryResult, default_code: str) -> Response:
    exc = result.exception
    return failure_response(
        getattr(exc, "code", default_code),
        str(exc) if exc is not None else result.message,
        retryable=bool(getattr(exc, "retryable", False)),
    )


def _ignored(result: RecoveryResult) -> Response:
    return {"success": True, "ignored": True, "message": result.message}


def build_service(settings: Settings) -> ContentGuardService:
    """Wire the service from settings."""
    loader = AnalyzerLoader(settings.analyzer_engine)
    manager = StreamingOperationManager(loader, settings)
    errors = ErrorManager(
        capacity=settings.error_log_capacity,
        base_delay_seconds=settings.retry_base_delay_seconds,
        max_retries=settings.max_retries,
    )
    sweeper = OperationSweeper(manager, settings.sweep_interval_seconds)
    return ContentGuardService(manager, loader, errors, sweeper)
