from typing import ClassVar

from contentguard.recovery.models import ErrorType


class StreamingError(Exception):
    """Base exception for all streaming-operation failures.

    Subclasses are tagged with the wire ``code``, the recovery ``error_type``,
    whether the caller may retry (``retryable``) and whether the error manager
    may attempt local recovery at all (``recoverable``).
    """

    code: ClassVar[str] = "STREAMING_FAILED"
    error_type: ClassVar[ErrorType] = ErrorType.FILE_ERROR
    retryable: bool = False
    recoverable: ClassVar[bool] = False

    def __init__(self, message: str, *, retryable: bool | None = None) -> None:
        super().__init__(message)
        if retryable is not None:
            self.retryable = retryable


class FileTooLargeError(StreamingError):
    """Raised when a declared file size exceeds the ceiling."""

    code: ClassVar[str] = "FILE_TOO_LARGE"


class ContentTooLargeError(StreamingError):
    """Raised when received content grows beyond the ceiling."""

    code: ClassVar[str] = "CONTENT_TOO_LARGE"


class OperationExistsError(StreamingError):
    """Raised when init reuses the id of a live operation."""

    code: ClassVar[str] = "OPERATION_EXISTS"


class OperationNotFoundError(StreamingError):
    """Raised when an id is unknown or its operation is already terminal."""

    code: ClassVar[str] = "OPERATION_NOT_FOUND"

    def __init__(self, operation_id: str) -> None:
        super().__init__(f"Streaming operation not found: {operation_id}")
        self.operation_id = operation_id


class SequenceMismatchError(StreamingError):
    """Raised when a chunk carries a sequence token other than the expected one."""

    code: ClassVar[str] = "SEQUENCE_MISMATCH"
    error_type: ClassVar[ErrorType] = ErrorType.UNKNOWN_ERROR

    def __init__(self, operation_id: str, expected: int, received: int) -> None:
        super().__init__(
            f"Sequence mismatch for operation {operation_id}: "
            f"expected {expected}, got {received}"
        )
        self.expected = expected
        self.received = received


class InvalidTransitionError(StreamingError):
    """Raised on a state change the operation lifecycle does not allow."""

    code: ClassVar[str] = "INVALID_STATE"
    error_type: ClassVar[ErrorType] = ErrorType.UNKNOWN_ERROR


class ChunkTimeoutError(StreamingError):
    code: ClassVar[str] = "STREAM_CHUNK_FAILED"
    error_type: ClassVar[ErrorType] = ErrorType.TIMEOUT_ERROR
    retryable: bool = True
    recoverable: ClassVar[bool] = True


class ChunkProcessingError(StreamingError):
    """Raised when analysis of a chunk fails; the operation is marked failed."""

    code: ClassVar[str] = "STREAM_CHUNK_FAILED"
    error_type: ClassVar[ErrorType] = ErrorType.MODULE_ERROR


class FinalizeTimeoutError(StreamingError):
    code: ClassVar[str] = "STREAM_FINALIZE_FAILED"
    error_type: ClassVar[ErrorType] = ErrorType.TIMEOUT_ERROR
    retryable: bool = True
    recoverable: ClassVar[bool] = True


class FinalizeError(StreamingError):
    code: ClassVar[str] = "STREAM_FINALIZE_FAILED"
    error_type: ClassVar[ErrorType] = ErrorType.MODULE_ERROR
    retryable: bool = True
    recoverable: ClassVar[bool] = True


class AnalysisTimeoutError(StreamingError):
    """Raised when the single-call analysis shortcut runs out of time."""

    code: ClassVar[str] = "ANALYSIS_TIMEOUT"
    error_type: ClassVar[ErrorType] = ErrorType.TIMEOUT_ERROR
    retryable: bool = True
    recoverable: ClassVar[bool] = True
