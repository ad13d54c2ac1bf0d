"""Domain layer errors.

Validation, self-vote and duplicate-vote conditions are expected business
outcomes and travel as typed results (see ``tally.domain.model.outcome``).
The exceptions below are for failures: bad input caught before a result can
be built, datastore trouble, and exhausted retries.
"""

from dataclasses import dataclass
from enum import Enum


class DomainError(Exception):
    """Base domain error."""

    pass


class ValidationError(DomainError):
    """Malformed or missing input, reported against a single field."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class BusinessRuleViolationError(DomainError):
    """Business rule violation error, e.g. an illegal vote state transition."""

    pass


class DatabaseError(DomainError):
    """Connectivity-level datastore failure. Retryable."""

    pass


class WriteConflictError(DatabaseError):
    """A concurrent writer got there first (stale version, serialization failure)."""

    pass


class CommitOutcomeUnknownError(DatabaseError):
    """The commit call failed in a way that does not say whether it landed."""

    pass


class TransactionError(DomainError):
    """Transaction failed fatally or exhausted its retries."""

    def __init__(self, message: str, attempts: int):
        self.attempts = attempts
        super().__init__(message)


class OperationTimeoutError(DomainError):
    """A transaction attempt exceeded its deadline and was abandoned."""

    def __init__(self, timeout_seconds: float, attempt: int | None = None):
        self.timeout_seconds = timeout_seconds
        self.attempt = attempt
        super().__init__(f"Operation timed out after {timeout_seconds * 1000:.0f}ms")


class ErrorSeverity(str, Enum):
    """How bad an error is for the caller."""

    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"


class ErrorCategory(str, Enum):
    """Where an error comes from."""

    SYSTEM = "system"
    DATABASE = "database"
    VALIDATION = "validation"
    BUSINESS = "business"


class ErrorCode(str, Enum):
    """Stable error codes surfaced to callers."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    SELF_VOTE = "SELF_VOTE"
    DUPLICATE_VOTE = "DUPLICATE_VOTE"
    TRANSACTION_ERROR = "TRANSACTION_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    DEFAULT_ERROR = "DEFAULT_ERROR"


@dataclass(frozen=True)
class ErrorMetadata:
    """Presentation hints for an error code."""

    severity: ErrorSeverity
    category: ErrorCategory
    recoverable: bool
    user_message: str


ERROR_METADATA: dict[ErrorCode, ErrorMetadata] = {
    ErrorCode.VALIDATION_ERROR: ErrorMetadata(
        severity=ErrorSeverity.WARNING,
        category=ErrorCategory.VALIDATION,
        recoverable=True,
        user_message="Please check your input and try again.",
    ),
    ErrorCode.SELF_VOTE: ErrorMetadata(
        severity=ErrorSeverity.WARNING,
        category=ErrorCategory.BUSINESS,
        recoverable=False,
        user_message="You cannot vote for your own item.",
    ),
    ErrorCode.DUPLICATE_VOTE: ErrorMetadata(
        severity=ErrorSeverity.WARNING,
        category=ErrorCategory.BUSINESS,
        recoverable=False,
        user_message="You have already voted for this item.",
    ),
    ErrorCode.TRANSACTION_ERROR: ErrorMetadata(
        severity=ErrorSeverity.ERROR,
        category=ErrorCategory.DATABASE,
        recoverable=True,
        user_message="Failed to process your vote. Please try again.",
    ),
    ErrorCode.TIMEOUT_ERROR: ErrorMetadata(
        severity=ErrorSeverity.ERROR,
        category=ErrorCategory.DATABASE,
        recoverable=True,
        user_message="The request timed out. Please try again.",
    ),
    ErrorCode.DATABASE_ERROR: ErrorMetadata(
        severity=ErrorSeverity.CRITICAL,
        category=ErrorCategory.DATABASE,
        recoverable=True,
        user_message="A database error occurred. Please try again later.",
    ),
    ErrorCode.DEFAULT_ERROR: ErrorMetadata(
        severity=ErrorSeverity.ERROR,
        category=ErrorCategory.SYSTEM,
        recoverable=False,
        user_message="An unexpected error occurred. Please try again later.",
    ),
}


def error_code_for(error: Exception) -> ErrorCode:
    """Map a raised failure to the code reported to callers."""
    if isinstance(error, OperationTimeoutError):
        return ErrorCode.TIMEOUT_ERROR
    if isinstance(error, TransactionError):
        return ErrorCode.TRANSACTION_ERROR
    if isinstance(error, DatabaseError):
        return ErrorCode.DATABASE_ERROR
    if isinstance(error, ValidationError):
        return ErrorCode.VALIDATION_ERROR
    return ErrorCode.DEFAULT_ERROR
