"""
Custom exceptions for the BodyVerse pricing web application.

Provides a hierarchy of exceptions for clean error handling in routes.
"""

from typing import Optional, Dict, Any


class AppException(Exception):
    """Base exception for application errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if status_code:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(AppException):
    """Raised when input validation fails."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class InvalidCurrencyError(ValidationError):
    """Raised when a currency code is not three letters."""

    error_code = "INVALID_CURRENCY"

    def __init__(self, value: Optional[str], field: str = "currency"):
        super().__init__(
            f"Invalid currency code: {value!r}. Expected a 3-letter ISO code.",
            details={"field": field, "value": value},
        )


class InvalidPeriodError(ValidationError):
    """Raised when a billing period is not recognised."""

    error_code = "INVALID_PERIOD"

    def __init__(self, value: Optional[str], allowed: list):
        super().__init__(
            f"Invalid billing period: {value!r}",
            details={"value": value, "allowed": allowed},
        )

