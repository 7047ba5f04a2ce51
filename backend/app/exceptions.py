"""
Application exceptions.

Each exception carries an error code, a human-readable message, optional
details and the HTTP status the API layer responds with.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Error codes returned in API error bodies."""
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    OPERATION_FAILED = "OPERATION_FAILED"


class BaseAppException(Exception):
    """Base class for all application exceptions."""

    status_code = 500
    error_code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the API error body."""
        return {
            "message": self.message,
            "error": {
                "code": self.error_code.value,
                "message": self.message,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"


class ValidationError(BaseAppException, ValueError):
    """A field is missing, malformed or outside its allowed values."""
    status_code = 422
    error_code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, field: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if field:
            details.setdefault("field", field)
        self.field = field
        super().__init__(message, details)


class DuplicateEntryError(BaseAppException):
    """A unique field value is already taken."""
    status_code = 409
    error_code = ErrorCode.DUPLICATE_ENTRY

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message, {"field": field} if field else None)


class NotFoundError(BaseAppException):
    """The requested resource does not exist."""
    status_code = 404
    error_code = ErrorCode.RESOURCE_NOT_FOUND


class BusinessRuleError(BaseAppException):
    """The request is well-formed but breaks a business rule."""
    status_code = 400
    error_code = ErrorCode.OPERATION_FAILED
