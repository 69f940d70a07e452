"""Custom exception hierarchy for Robokache."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Document errors
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    INVALID_DOCUMENT_ID = "INVALID_DOCUMENT_ID"
    INVALID_PARENT = "INVALID_PARENT"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Storage errors
    STORAGE_ERROR = "STORAGE_ERROR"

    # Auth
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class RobokacheException(Exception):
    """
    Base exception for all Robokache errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            status_code: HTTP status code to return
            details: Optional additional context/details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON response.

        Server-side failures never echo their message or details; those are
        only logged.

        Returns:
            Dictionary with error, message, and details fields
        """
        if self.status_code >= 500:
            return {
                "error": ErrorCode.INTERNAL_ERROR.value,
                "message": "Internal Server Error",
                "details": {},
            }
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class DocumentNotFoundError(RobokacheException):
    """Document not found, or not visible to the caller.

    Both cases produce the same message so a response never reveals that a
    hidden document exists.
    """

    def __init__(self, doc_id: str):
        super().__init__(
            f"Document not found: {doc_id}",
            ErrorCode.DOCUMENT_NOT_FOUND,
            status_code=404,
            details={"doc_id": doc_id}
        )


class ValidationError(RobokacheException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class InvalidDocumentIDError(RobokacheException):
    """External document ID could not be decoded."""

    def __init__(self, doc_id: str):
        super().__init__(
            "Invalid document ID",
            ErrorCode.INVALID_DOCUMENT_ID,
            status_code=400,
            details={"doc_id": doc_id}
        )


class InvalidParentError(RobokacheException):
    """Proposed parent is missing, owned by someone else, or less visible than the child."""

    def __init__(
        self,
        message: str = (
            "Check that the parent exists, that you own it, and that the "
            "document is not more visible than its parent"
        ),
    ):
        super().__init__(
            message,
            ErrorCode.INVALID_PARENT,
            status_code=400,
        )


class AuthenticationError(RobokacheException):
    """Request lacks valid authentication credentials."""

    def __init__(
        self,
        message: str = "Invalid or missing authentication token",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
            details=details,
        )


class ForbiddenError(RobokacheException):
    """Authenticated user lacks permission for the requested action."""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(
            message,
            ErrorCode.FORBIDDEN,
            status_code=403,
        )


class StorageError(RobokacheException):
    """Database or blob storage operation failed."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message,
            ErrorCode.STORAGE_ERROR,
            status_code=500,
            details=details
        )
