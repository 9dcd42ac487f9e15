from contentguard.recovery.models import ErrorType, RecoveryStrategy

# retries allowed per error type before degrading to fallback
_RETRY_LIMITS: dict[ErrorType, int] = {
    ErrorType.MODULE_ERROR: 2,
    ErrorType.NETWORK_ERROR: 3,
    ErrorType.TIMEOUT_ERROR: 2,
}

_FIXED: dict[ErrorType, RecoveryStrategy] = {
    ErrorType.FILE_ERROR: RecoveryStrategy.FALLBACK,
    ErrorType.PERMISSION_ERROR: RecoveryStrategy.ABORT,
    ErrorType.UNKNOWN_ERROR: RecoveryStrategy.IGNORE,
}


def select_strategy(error_type: ErrorType, retry_count: int) -> RecoveryStrategy:
    """Pick the recovery strategy for a failure of ``error_type``."""
    if error_type in _RETRY_LIMITS:
        if retry_count < _RETRY_LIMITS[error_type]:
            return RecoveryStrategy.RETRY
        return RecoveryStrategy.FALLBACK
    return _FIXED[error_type]


def backoff_delay(retry_count: int, base_seconds: float = 1.0) -> float:
    """Exponential backoff: 1s, 2s, 4s for retry counts 0, 1, 2 at the default base."""
    return base_seconds * 2**retry_count
