from typing import ClassVar

from contentguard.recovery.models import ErrorType


class MessageValidationError(Exception):
    """Raised when an inbound message is malformed."""

    code: ClassVar[str] = "INVALID_MESSAGE"
    error_type: ClassVar[ErrorType] = ErrorType.UNKNOWN_ERROR
    retryable: ClassVar[bool] = False
    recoverable: ClassVar[bool] = False


class UnknownMessageError(MessageValidationError):
    """Raised for a message type the service does not handle."""

    code: ClassVar[str] = "UNKNOWN_MESSAGE"
