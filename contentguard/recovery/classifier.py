"""Maps an arbitrary failure to the bounded error taxonomy.

Exceptions raised by the core carry their own ``error_type`` tag and are
classified from it directly. Anything else (builtin OS errors, failures
from foreign code) falls back to exception-type checks and finally to
keyword matching on the message text.
"""

from contentguard.recovery.models import ErrorContext, ErrorSeverity, ErrorType

MODULE_INIT_OPERATION = "module_init"

_KEYWORDS: tuple[tuple[ErrorType, ErrorSeverity, tuple[str, ...]], ...] = (
    (ErrorType.MODULE_ERROR, ErrorSeverity.HIGH, ("module", "wasm", "engine")),
    (ErrorType.FILE_ERROR, ErrorSeverity.MEDIUM, ("file",)),
    (ErrorType.NETWORK_ERROR, ErrorSeverity.MEDIUM, ("network", "fetch", "connection")),
    (ErrorType.PERMISSION_ERROR, ErrorSeverity.HIGH, ("permission", "access")),
    (ErrorType.TIMEOUT_ERROR, ErrorSeverity.MEDIUM, ("timeout", "timed out")),
)

_DEFAULT_SEVERITY: dict[ErrorType, ErrorSeverity] = {
    error_type: severity for error_type, severity, _ in _KEYWORDS
}
_DEFAULT_SEVERITY[ErrorType.UNKNOWN_ERROR] = ErrorSeverity.MEDIUM

_SEVERITY_ORDER = list(ErrorSeverity)


class ErrorClassifier:
    def classify(
        self, error: BaseException, context: ErrorContext
    ) -> tuple[ErrorType, ErrorSeverity]:
        error_type = self._error_type(error)
        severity = _DEFAULT_SEVERITY[error_type]
        if context.operation == MODULE_INIT_OPERATION:
            severity = ErrorSeverity.CRITICAL
        elif context.retry_count > 3:
            severity = _at_least(severity, ErrorSeverity.HIGH)
        return error_type, severity

    def _error_type(self, error: BaseException) -> ErrorType:
        tagged = getattr(error, "error_type", None)
        if isinstance(tagged, ErrorType):
            return tagged

        if isinstance(error, PermissionError):
            return ErrorType.PERMISSION_ERROR
        if isinstance(error, TimeoutError):
            return ErrorType.TIMEOUT_ERROR
        if isinstance(error, ConnectionError):
            return ErrorType.NETWORK_ERROR
        if isinstance(error, ImportError):
            return ErrorType.MODULE_ERROR
        if isinstance(error, OSError):
            return ErrorType.FILE_ERROR

        message = str(error).lower()
        for error_type, _, keywords in _KEYWORDS:
            if any(keyword in message for keyword in keywords):
                return error_type
        return ErrorType.UNKNOWN_ERROR


def _at_least(severity: ErrorSeverity, floor: ErrorSeverity) -> ErrorSeverity:
    return max(severity, floor, key=_SEVERITY_ORDER.index)
