import asyncio
import math
import time
from collections.abc import Callable
from dataclasses import replace

from contentguard.analysis.base import BaseAnalyzer
from contentguard.analysis.exceptions import AnalysisError
from contentguard.analysis.loader import AnalyzerLoader
from contentguard.analysis.models import AnalysisConfig, AnalysisResult
from contentguard.config.settings import Settings
from contentguard.logging.logger import Log
from contentguard.streaming.exceptions import (
    AnalysisTimeoutError,
    ChunkProcessingError,
    ChunkTimeoutError,
    ContentTooLargeError,
    FileTooLargeError,
    FinalizeError,
    FinalizeTimeoutError,
    OperationExistsError,
    OperationNotFoundError,
    SequenceMismatchError,
)
from contentguard.streaming.models import (
    Backpressure,
    ChunkOutcome,
    ChunkProgress,
    FileMeta,
    OperationState,
    StreamingOperation,
)
from contentguard.streaming.store import OperationStore


class StreamingOperationManager:
    """Owns live streaming operations: init, chunk ingestion, finalize, sweep.

    Calls for one operation are serialized by that operation's lock. Analysis
    work runs in a worker thread so the per-call timeout can fire; session
    state is committed back on the event loop only after staging succeeds,
    so a timed-out chunk leaves the operation exactly as it was.
    """

    def __init__(
        self,
        loader: AnalyzerLoader,
        settings: Settings,
        store: OperationStore | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self._settings = settings
        self._store = store if store is not None else OperationStore()
        self._clock = clock
        self._default_config = AnalysisConfig.from_settings(settings)

    @property
    def default_config(self) -> AnalysisConfig:
        return self._default_config

    @property
    def active_count(self) -> int:
        return len(self._store)

    def get(self, operation_id: str) -> StreamingOperation:
        return self._store.get(operation_id)

    async def init(
        self,
        operation_id: str,
        file_meta: FileMeta,
        config: AnalysisConfig | None = None,
        *,
        degraded: bool = False,
    ) -> StreamingOperation:
        """Create a Processing operation for ``file_meta``.

        Raises:
            FileTooLargeError: declared size above the ceiling; nothing is stored.
            OperationExistsError: ``operation_id`` is already live.
        """
        max_size = self._settings.max_file_size_bytes
        if file_meta.size > max_size:
            raise FileTooLargeError(
                f"File too large: {file_meta.size} bytes exceeds maximum of {max_size} bytes"
            )
        if operation_id in self._store:
            raise OperationExistsError(f"Streaming operation already exists: {operation_id}")

        analyzer = await self._analyzer(degraded)
        config = config or self._default_config
        now = self._clock()
        operation = StreamingOperation(
            id=operation_id,
            file_meta=file_meta,
            config=config,
            session=analyzer.open_session(config),
            engine=analyzer.name,
            start_time=now,
            last_activity=now,
            fallback_used=degraded,
        )
        self._store.add(operation)
        Log.info(
            f"Streaming operation {operation_id} created",
            engine=analyzer.name,
            size=file_meta.size,
        )
        return operation

    async def process_chunk(
        self,
        operation_id: str,
        chunk: str | bytes,
        *,
        sequence: int | None = None,
        degraded: bool = False,
    ) -> ChunkOutcome:
        """Append one chunk and update the running totals.

        ``sequence``, when given, must equal the number of chunks already
        accepted. With ``degraded`` the operation switches to the basic
        engine and the chunk is processed without a timeout.
        """
        operation = self._store.get(operation_id)
        async with operation.lock:
            self._ensure_current(operation)
            if sequence is not None and sequence != operation.sequence:
                raise SequenceMismatchError(operation_id, operation.sequence, sequence)

            decoder_state = operation.decoder.getstate()
            text = operation.decoder.decode(chunk) if isinstance(chunk, bytes) else chunk

            max_size = self._settings.max_file_size_bytes
            new_length = operation.stats.total_content_length + len(text)
            if new_length > max_size:
                self._fail(operation)
                raise ContentTooLargeError(
                    f"Content too large: {new_length} characters exceeds maximum of "
                    f"{max_size} for operation {operation_id}"
                )

            if degraded:
                self._degrade(operation)

            timeout = self._settings.operation_timeout_seconds
            try:
                if degraded:
                    staged = await asyncio.to_thread(operation.session.stage, text)
                else:
                    staged = await asyncio.wait_for(
                        asyncio.to_thread(operation.session.stage, text), timeout=timeout
                    )
            except TimeoutError as exc:
                operation.decoder.setstate(decoder_state)
                raise ChunkTimeoutError(
                    f"Chunk processing timed out after {timeout}s for operation {operation_id}"
                ) from exc
            except Exception as exc:
                self._fail(operation)
                raise ChunkProcessingError(
                    f"Chunk processing failed for operation {operation_id}: {exc}"
                ) from exc

            counts = operation.session.commit(staged)
            now = self._clock()
            operation.stats = replace(
                operation.stats.with_counts(counts),
                total_chunks=operation.stats.total_chunks + 1,
                processing_time_ms=(now - operation.start_time) * 1000,
            )
            operation.last_activity = now

            if operation.state is OperationState.PAUSED:
                operation.transition(OperationState.PROCESSING)
            backpressure = self._backpressure(operation)
            if backpressure.pause:
                operation.transition(OperationState.PAUSED)

            Log.debug(
                f"Chunk {operation.sequence} accepted for operation {operation_id}",
                length=operation.stats.total_content_length,
            )
            return ChunkOutcome(
                progress=self._progress(operation, now),
                backpressure=backpressure,
                operation_state=operation.state,
                sequence=operation.sequence,
            )

    async def finalize(
        self, operation_id: str, *, force: bool = False, degraded: bool = False
    ) -> AnalysisResult:
        """Run the full analysis once, mark the operation Finalized and drop it.

        Failures leave the operation live; they are retryable unless ``force``.
        """
        operation = self._store.get(operation_id)
        async with operation.lock:
            self._ensure_current(operation)

            tail = operation.decoder.decode(b"", final=True)
            if tail:
                counts = operation.session.commit(operation.session.stage(tail))
                operation.stats = operation.stats.with_counts(counts)

            stats = replace(
                operation.stats,
                processing_time_ms=(self._clock() - operation.start_time) * 1000,
            )
            timeout = self._settings.operation_timeout_seconds
            try:
                if degraded:
                    session = self._loader.fallback().restore_session(
                        operation.config, operation.content
                    )
                    result = await asyncio.to_thread(session.result, stats)
                else:
                    result = await asyncio.wait_for(
                        asyncio.to_thread(operation.session.result, stats), timeout=timeout
                    )
            except TimeoutError as exc:
                raise FinalizeTimeoutError(
                    f"Finalize timed out after {timeout}s for operation {operation_id}",
                    retryable=not force,
                ) from exc
            except Exception as exc:
                raise FinalizeError(
                    f"Finalize failed for operation {operation_id}: {exc}",
                    retryable=not force,
                ) from exc

            if degraded or operation.fallback_used:
                result = replace(result, fallback_used=True)
            operation.stats = stats
            if operation.state is OperationState.PAUSED:
                operation.transition(OperationState.PROCESSING)
            operation.transition(OperationState.FINALIZED)
            self._store.remove(operation_id)
            Log.info(
                f"Streaming operation {operation_id} finalized",
                decision=result.decision.value,
                chunks=stats.total_chunks,
            )
            return result

    async def analyze_content(
        self,
        content: str,
        file_name: str,
        config: AnalysisConfig | None = None,
        *,
        degraded: bool = False,
    ) -> AnalysisResult:
        """Single-call analysis for content no larger than one chunk; stores nothing."""
        size = len(content.encode("utf-8"))
        limit = self._settings.chunk_size_bytes
        if size > limit:
            raise ContentTooLargeError(
                f"Content too large for single-call analysis: {size} bytes exceeds "
                f"{limit} bytes, use streaming"
            )
        config = config or self._default_config
        analyzer = await self._analyzer(degraded)
        timeout = self._settings.operation_timeout_seconds
        try:
            if degraded:
                result = await asyncio.to_thread(analyzer.analyze, content, config)
            else:
                result = await asyncio.wait_for(
                    asyncio.to_thread(analyzer.analyze, content, config), timeout=timeout
                )
        except TimeoutError as exc:
            raise AnalysisTimeoutError(
                f"Analysis of {file_name} timed out after {timeout}s"
            ) from exc
        except Exception as exc:
            raise AnalysisError(f"Analysis module failed on {file_name}: {exc}") from exc

        Log.debug(f"Analyzed {file_name}", decision=result.decision.value)
        return replace(result, fallback_used=True) if degraded else result

    def sweep(self, now: float | None = None) -> list[str]:
        """Drop every operation idle longer than the staleness window."""
        now = self._clock() if now is None else now
        window = self._settings.stale_operation_seconds
        stale = [op.id for op in self._store.values() if now - op.last_activity > window]
        for operation_id in stale:
            self._store.remove(operation_id)
            Log.info(f"Swept stale streaming operation {operation_id}")
        return stale

    async def _analyzer(self, degraded: bool) -> BaseAnalyzer:
        if degraded:
            return self._loader.fallback()
        return await self._loader.load()

    def _ensure_current(self, operation: StreamingOperation) -> None:
        # finalized, failed or swept while this call waited for the lock
        if self._store.get(operation.id) is not operation:
            raise OperationNotFoundError(operation.id)

    def _degrade(self, operation: StreamingOperation) -> None:
        operation.fallback_used = True
        fallback = self._loader.fallback()
        if operation.engine == fallback.name:
            return
        operation.session = fallback.restore_session(operation.config, operation.content)
        operation.engine = fallback.name
        Log.warning(f"Operation {operation.id} switched to {fallback.name} engine")

    def _fail(self, operation: StreamingOperation) -> None:
        if operation.state is OperationState.PAUSED:
            operation.transition(OperationState.PROCESSING)
        operation.transition(OperationState.FAILED)
        self._store.remove(operation.id)
        Log.error(f"Streaming operation {operation.id} failed")

    def _backpressure(self, operation: StreamingOperation) -> Backpressure:
        pause = operation.stats.total_chunks > self._settings.backpressure_chunk_limit
        return Backpressure(
            pause=pause,
            resume_after_ms=self._settings.backpressure_resume_ms if pause else None,
            queue_size=len(self._store),
            max_queue_size=self._settings.max_queue_size,
            processing_rate=self._settings.processing_rate,
        )

    def _progress(self, operation: StreamingOperation, now: float) -> ChunkProgress:
        current = operation.stats.total_chunks
        expected = max(1, math.ceil(operation.file_meta.size / self._settings.chunk_size_bytes))
        elapsed_ms = (now - operation.start_time) * 1000
        remaining = max(0, expected - current)
        return ChunkProgress(
            current_chunk=current,
            total_chunks=expected,
            percentage=min(100.0, current / expected * 100),
            stats=operation.stats,
            estimated_time_ms=round(elapsed_ms / current * remaining),
        )
