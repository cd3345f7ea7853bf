"""
Custom exceptions for the training physiology engine.

Estimators never raise on unusual runner data: malformed records are
filtered and thin evidence is reported as an explicit "no estimate"
result. The exceptions below are reserved for programmer misuse, such as
passing a negative race time or a load series with missing days. Each
exception includes:
- A descriptive message
- An error code
- Optional details for debugging
"""

from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for consistent error reporting."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Load series errors
    LOAD_SERIES_GAP = "LOAD_SERIES_GAP"
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"

    # Performance errors
    INVALID_PERFORMANCE = "INVALID_PERFORMANCE"
    UNKNOWN_DISTANCE = "UNKNOWN_DISTANCE"


class TrainingPhysiologyError(Exception):
    """
    Base exception for all training physiology errors.

    Attributes:
        message: Human-readable error message
        code: Error code from ErrorCode enum
        details: Optional dictionary with additional error details
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        result: Dict[str, Any] = {
            "error": {
                "code": self.code.value,
                "message": self.message,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


class ValidationError(TrainingPhysiologyError, ValueError):
    """Raised when a caller passes arguments of the wrong shape or sign."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(message=message, code=code, details=error_details)


class UnknownDistanceError(ValidationError):
    """Raised when a race distance label cannot be resolved."""

    def __init__(self, label: str) -> None:
        super().__init__(
            message=f"Unknown race distance: {label!r}",
            field="distance",
            code=ErrorCode.UNKNOWN_DISTANCE,
            details={"label": label},
        )


class ConfigurationError(TrainingPhysiologyError, ValueError):
    """Raised when engine tunables are inconsistent."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.CONFIGURATION_ERROR,
            details=details,
        )
