"""Error taxonomy and classification for task operations."""

from enum import Enum

from pydantic import BaseModel

from src.core.config import Constants


class TaskLedgerError(Exception):
    """Base class for errors raised by the task core."""


class ValidationError(TaskLedgerError):
    """Request data is missing, malformed, out of range, or not allowed."""


class NotFoundError(TaskLedgerError):
    """A task, subtask, or tag referenced by the request does not exist."""


class StoreError(TaskLedgerError):
    """The persistence collaborator failed; passed through without retry."""


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_STORE = "ERR_STORE"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response returned to API callers."""

    code: str
    message: str
    severity: ErrorSeverity


def http_status_for(exception: Exception) -> int:
    """Return the HTTP status code that corresponds to an exception."""
    if isinstance(exception, ValidationError):
        return Constants.HTTP_BAD_REQUEST
    if isinstance(exception, NotFoundError):
        return Constants.HTTP_NOT_FOUND
    return Constants.HTTP_SERVER_ERROR


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response.

    Args:
        exception: The exception raised while handling a request

    Returns:
        ErrorResponse with code, message, and severity
    """
    if isinstance(exception, ValidationError):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=str(exception),
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, NotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            message=str(exception),
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, StoreError):
        return ErrorResponse(
            code=ErrorCode.ERR_STORE,
            message="The task store is unavailable. Please try again later.",
            severity=ErrorSeverity.HIGH,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        severity=ErrorSeverity.MEDIUM,
    )
