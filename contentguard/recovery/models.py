from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class ErrorType(str, Enum):
    """Bounded failure taxonomy used for recovery-policy lookup."""

    MODULE_ERROR = "module_error"  # analysis module failed to load or run
    FILE_ERROR = "file_error"
    NETWORK_ERROR = "network_error"
    PERMISSION_ERROR = "permission_error"
    TIMEOUT_ERROR = "timeout_error"
    UNKNOWN_ERROR = "unknown_error"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RecoveryStrategy(str, Enum):
    RETRY = "retry"
    FALLBACK = "fallback"
    ABORT = "abort"
    IGNORE = "ignore"


@dataclass(frozen=True)
class ErrorContext:
    """Where a failure happened: operation name plus free-form metadata."""

    operation: str
    metadata: dict[str, Any] = field(default_factory=dict)
    retry_count: int = 0


@dataclass
class ErrorRecord:
    """One classified failure, kept in the error manager's ring buffer."""

    id: str
    type: ErrorType
    severity: ErrorSeverity
    message: str
    timestamp: float
    context: ErrorContext
    retry_count: int = 0
    recovered: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["type"] = self.type.value
        payload["severity"] = self.severity.value
        return payload


@dataclass(frozen=True)
class ErrorStats:
    total: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    by_severity: dict[str, int] = field(default_factory=dict)
    recovered: int = 0
    unrecovered: int = 0
    recovery_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RecoveryResult:
    """Outcome of running an action under the error manager.

    ``strategy`` is None when the action succeeded on its first attempt.
    ``value`` holds the action's (or the fallback's) return value.
    """

    recovered: bool
    strategy: RecoveryStrategy | None = None
    value: Any = None
    retry_count: int = 0
    fallback_used: bool = False
    message: str = ""
    error: ErrorRecord | None = None
    exception: BaseException | None = field(default=None, repr=False)
