import asyncio
import time
import uuid
from collections import Counter, deque
from collections.abc import Awaitable, Callable
from typing import Any

from contentguard.logging.logger import Log
from contentguard.recovery.classifier import ErrorClassifier
from contentguard.recovery.models import (
    ErrorContext,
    ErrorRecord,
    ErrorStats,
    ErrorType,
    RecoveryResult,
    RecoveryStrategy,
)
from contentguard.recovery.strategy import backoff_delay, select_strategy

Action = Callable[[], Awaitable[Any]]

_USER_MESSAGES: dict[ErrorType, str] = {
    ErrorType.MODULE_ERROR: "Analysis engine failed to load. Using fallback method.",
    ErrorType.FILE_ERROR: "The file could not be processed. Please check its size and type.",
    ErrorType.NETWORK_ERROR: "Network error occurred. Please check your connection.",
    ErrorType.PERMISSION_ERROR: "Permission denied. The file cannot be analyzed.",
    ErrorType.TIMEOUT_ERROR: "Analysis timed out. Please try again.",
    ErrorType.UNKNOWN_ERROR: "An unexpected error occurred. Please try again.",
}


class ErrorManager:
    """Runs fallible actions, classifies failures and applies recovery.

    Every classified failure is kept in a bounded ring buffer (oldest
    evicted first). Aggregate counters are kept separately, so statistics
    still cover records the buffer has already dropped.
    """

    def __init__(
        self,
        *,
        capacity: int = 100,
        base_delay_seconds: float = 1.0,
        max_retries: int = 3,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        classifier: ErrorClassifier | None = None,
    ) -> None:
        self._log: deque[ErrorRecord] = deque(maxlen=capacity)
        self._base_delay = base_delay_seconds
        self._max_retries = max_retries
        self._sleep = sleep
        self._classifier = classifier or ErrorClassifier()
        self._reset_counters()

    async def execute(
        self,
        operation: str,
        action: Action,
        *,
        fallback: Action | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> RecoveryResult:
        """Run ``action``, recovering from failures by strategy.

        Retry re-invokes ``action`` after an exponential backoff. Fallback
        runs ``fallback`` instead. Abort and exhausted fallbacks come back
        with ``recovered=False``; the caller surfaces them as terminal.
        """
        metadata = metadata or {}
        records: list[ErrorRecord] = []
        retry_count = 0
        while True:
            try:
                value = await action()
            except Exception as exc:
                context = ErrorContext(operation=operation, metadata=metadata, retry_count=retry_count)
                record = self._record(exc, context)
                records.append(record)
                strategy = self._select(exc, record.type, retry_count)

                if strategy is RecoveryStrategy.RETRY:
                    delay = backoff_delay(retry_count, self._base_delay)
                    Log.warning(
                        f"Retrying {operation} in {delay}s",
                        attempt=retry_count + 1,
                        error_type=record.type.value,
                    )
                    await self._sleep(delay)
                    retry_count += 1
                    continue

                if strategy is RecoveryStrategy.FALLBACK:
                    result = await self._fallback(
                        operation, fallback, exc, record, records, metadata, retry_count
                    )
                elif strategy is RecoveryStrategy.ABORT:
                    result = RecoveryResult(
                        recovered=False,
                        strategy=strategy,
                        retry_count=retry_count,
                        message=str(exc),
                        error=record,
                        exception=exc,
                    )
                else:
                    result = RecoveryResult(
                        recovered=True,
                        strategy=strategy,
                        retry_count=retry_count,
                        message=f"Ignored: {exc}",
                        error=record,
                        exception=exc,
                    )
                self._resolve(records, result.recovered)
                return result

            self._resolve(records, True)
            return RecoveryResult(
                recovered=True,
                strategy=RecoveryStrategy.RETRY if records else None,
                value=value,
                retry_count=retry_count,
                error=records[-1] if records else None,
            )

    def get_error_log(self) -> list[ErrorRecord]:
        """Return the retained records, oldest first."""
        return list(self._log)

    def get_error_stats(self) -> ErrorStats:
        total = self._total
        return ErrorStats(
            total=total,
            by_type=dict(self._by_type),
            by_severity=dict(self._by_severity),
            recovered=self._recovered,
            unrecovered=self._unrecovered,
            recovery_rate=self._recovered / total if total else 0.0,
        )

    def clear(self) -> None:
        self._log.clear()
        self._reset_counters()

    @staticmethod
    def user_message(error_type: ErrorType) -> str:
        return _USER_MESSAGES.get(error_type, _USER_MESSAGES[ErrorType.UNKNOWN_ERROR])

    def _select(
        self, exc: Exception, error_type: ErrorType, retry_count: int
    ) -> RecoveryStrategy:
        if not getattr(exc, "recoverable", True):
            return RecoveryStrategy.ABORT
        strategy = select_strategy(error_type, retry_count)
        if strategy is RecoveryStrategy.RETRY and retry_count >= self._max_retries:
            return RecoveryStrategy.FALLBACK
        return strategy

    async def _fallback(
        self,
        operation: str,
        fallback: Action | None,
        exc: Exception,
        record: ErrorRecord,
        records: list[ErrorRecord],
        metadata: dict[str, Any],
        retry_count: int,
    ) -> RecoveryResult:
        if fallback is None:
            return RecoveryResult(
                recovered=False,
                strategy=RecoveryStrategy.FALLBACK,
                retry_count=retry_count,
                message=f"No fallback available: {exc}",
                error=record,
                exception=exc,
            )
        Log.warning(f"Using fallback for {operation}", error_type=record.type.value)
        try:
            value = await fallback()
        except Exception as fallback_exc:
            context = ErrorContext(
                operation=f"{operation}_fallback", metadata=metadata, retry_count=retry_count
            )
            fallback_record = self._record(fallback_exc, context)
            records.append(fallback_record)
            return RecoveryResult(
                recovered=False,
                strategy=RecoveryStrategy.FALLBACK,
                retry_count=retry_count,
                fallback_used=True,
                message=str(fallback_exc),
                error=fallback_record,
                exception=fallback_exc,
            )
        return RecoveryResult(
            recovered=True,
            strategy=RecoveryStrategy.FALLBACK,
            value=value,
            retry_count=retry_count,
            fallback_used=True,
            message=f"Recovered with fallback after: {exc}",
            error=record,
        )

    def _record(self, exc: Exception, context: ErrorContext) -> ErrorRecord:
        error_type, severity = self._classifier.classify(exc, context)
        record = ErrorRecord(
            id=str(uuid.uuid4()),
            type=error_type,
            severity=severity,
            message=str(exc),
            timestamp=time.time(),
            context=context,
            retry_count=context.retry_count,
        )
        self._log.append(record)
        self._total += 1
        self._by_type[error_type.value] += 1
        self._by_severity[severity.value] += 1
        Log.error(
            f"{context.operation} failed: {exc}",
            error_type=error_type.value,
            severity=severity.value,
            retry=context.retry_count,
        )
        return record

    def _resolve(self, records: list[ErrorRecord], recovered: bool) -> None:
        for record in records:
            record.recovered = recovered
            if recovered:
                self._recovered += 1
            else:
                self._unrecovered += 1

    def _reset_counters(self) -> None:
        self._total = 0
        self._by_type: Counter[str] = Counter()
        self._by_severity: Counter[str] = Counter()
        self._recovered = 0
        self._unrecovered = 0
