from typing import ClassVar

from contentguard.recovery.models import ErrorType


class AnalysisError(Exception):
    """Base exception for all analysis-engine failures."""

    code: ClassVar[str] = "ANALYSIS_FAILED"
    error_type: ClassVar[ErrorType] = ErrorType.MODULE_ERROR
    retryable: ClassVar[bool] = True
    recoverable: ClassVar[bool] = True


class ModuleLoadError(AnalysisError):
    """Raised when the configured analysis module cannot be loaded."""

    code: ClassVar[str] = "MODULE_LOAD_FAILED"
