"""Board error types and classification utilities.

The engine itself is permissive: unknown ids and malformed dates are no-ops,
never exceptions. The exceptions below cover the places that do fail loudly:
durable stores, optimistic commits, and the edit boundary.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel


class BoardError(Exception):
    """Base class for taskboard errors."""


class StateStoreError(BoardError):
    """A durable store backend failed to read or write."""


class PersistenceError(BoardError):
    """A committed change could not be saved and was rolled back."""

    def __init__(self, operation: str, reason: str = "save failed") -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Could not persist {operation}: {reason}")


class EditValidationError(BoardError):
    """A task or column edit violated a business rule at the edit boundary."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors))


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_PERSISTENCE = "ERR_PERSISTENCE"
    ERR_STORAGE_BACKEND = "ERR_STORAGE_BACKEND"
    ERR_AUTHENTICATION_FAILED = "ERR_AUTHENTICATION_FAILED"
    ERR_NETWORK_ERROR = "ERR_NETWORK_ERROR"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


_ERROR_PATTERNS: dict[Literal["auth", "network"], dict[str, list[str] | set[str]]] = {
    "auth": {
        "phrases": [
            "authentication failed",
            "invalid api key",
            "unauthorized",
            "forbidden",
            "401",
            "403",
        ],
        "exception_types": {"PermissionError"},
    },
    "network": {
        "phrases": [
            "connection",
            "timeout",
            "network",
            "503",
            "502",
            "504",
            "unreachable",
        ],
        "exception_types": {"ConnectionError", "TimeoutError", "ConnectError", "ReadTimeout"},
    },
}


def _match_error_pattern(*, error_str: str, exception_type: str, pattern_type: Literal["auth", "network"]) -> bool:
    """Return True if the error matches the configured pattern type."""
    patterns = _ERROR_PATTERNS[pattern_type]
    return any(phrase in error_str for phrase in patterns["phrases"]) or exception_type in patterns["exception_types"]


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised while editing or persisting the board

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    error_str = str(exception).lower()
    exception_type = type(exception).__name__

    if isinstance(exception, EditValidationError) or exception_type == "ValidationError":
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message="Some of the entered values are not valid.",
            suggestion="Check the title, progress and dates, then try again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, PersistenceError):
        return ErrorResponse(
            code=ErrorCode.ERR_PERSISTENCE,
            message="Your change could not be saved and was undone.",
            suggestion="Check your connection and repeat the change.",
            severity=ErrorSeverity.MEDIUM,
        )

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="auth"):
        return ErrorResponse(
            code=ErrorCode.ERR_AUTHENTICATION_FAILED,
            message="The board storage service rejected the credentials.",
            suggestion="Verify REMOTE_API_KEY.",
            severity=ErrorSeverity.CRITICAL,
        )

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="network"):
        return ErrorResponse(
            code=ErrorCode.ERR_NETWORK_ERROR,
            message="Network error occurred.",
            suggestion="Please check your connection and try again.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, StateStoreError):
        return ErrorResponse(
            code=ErrorCode.ERR_STORAGE_BACKEND,
            message="The board storage backend failed.",
            suggestion="Check that the state file or database is writable.",
            severity=ErrorSeverity.HIGH,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, reload the board.",
        severity=ErrorSeverity.MEDIUM,
    )
