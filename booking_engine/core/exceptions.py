import enum
from typing import Optional


class ValidationErrorKind(str, enum.Enum):
    INVALID_RECURRENCE = "INVALID_RECURRENCE"
    INVALID_DURATION = "INVALID_DURATION"
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
    INVALID_LIMIT = "INVALID_LIMIT"


class BookingEngineError(Exception):
    """Base class for errors raised by the booking engine."""

    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SchedulingValidationError(BookingEngineError, ValueError):
    """Caller-correctable input error, carrying a machine-readable kind."""

    def __init__(self, kind: ValidationErrorKind, message: str):
        super().__init__(message)
        self.kind = kind

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}

    def __repr__(self):
        return f"<SchedulingValidationError(kind={self.kind.value}, message={self.message!r})>"


class StoreUnavailableError(BookingEngineError):
    """A read against the scheduling store failed. Callers may retry."""

    retryable = True

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        message = f"Scheduling store read failed during {operation}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.operation = operation
        self.cause = cause
