"""
Custom Exception Classes for the engagement service

Storage-layer errors are never exposed verbatim to clients. They are
classified into the exceptions below and mapped to a stable error code.
"""

import enum
from typing import Any

from fastapi import status


class ErrorCode(str, enum.Enum):
    """Machine-readable error codes returned in the error envelope."""

    # Validation
    VALIDATION_FAILED = "VALIDATION_FAILED"
    VALIDATION_INVALID_IDENTITY = "VALIDATION_INVALID_IDENTITY"

    # Authentication
    AUTH_FAILED = "AUTH_FAILED"
    AUTH_TOKEN_EXPIRED = "AUTH_TOKEN_EXPIRED"
    AUTH_PERMISSION_DENIED = "AUTH_PERMISSION_DENIED"

    # Resources
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_CONTENT_NOT_FOUND = "RESOURCE_CONTENT_NOT_FOUND"
    RESOURCE_CATEGORY_NOT_FOUND = "RESOURCE_CATEGORY_NOT_FOUND"
    RESOURCE_USER_NOT_FOUND = "RESOURCE_USER_NOT_FOUND"
    RESOURCE_NO_CONTENT_FOUND = "RESOURCE_NO_CONTENT_FOUND"

    # Storage
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"

    # Generic
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class EngagementError(Exception):
    """Base exception class for all engagement-related exceptions"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.error_code = error_code
        super().__init__(self.message)


# ============================================================================
# Authentication Exceptions
# ============================================================================


class AuthenticationError(EngagementError):
    """Raised when authentication fails"""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.AUTH_FAILED,
    ):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED, error_code=error_code)


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired"""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message=message, error_code=ErrorCode.AUTH_TOKEN_EXPIRED)


class InvalidTokenError(AuthenticationError):
    """Raised when JWT token is invalid"""

    def __init__(self, message: str = "Invalid or malformed token"):
        super().__init__(message=message)


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class ResourceNotFoundError(EngagementError):
    """Base class for resource not found errors"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Any | None = None,
        error_code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
    ):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
            error_code=error_code,
        )


class ContentNotFoundError(ResourceNotFoundError):
    """Raised when content does not exist or has been deleted"""

    def __init__(self, content_id: Any | None = None):
        super().__init__(
            resource_type="Content",
            resource_id=content_id,
            error_code=ErrorCode.RESOURCE_CONTENT_NOT_FOUND,
        )


class CategoryNotFoundError(ResourceNotFoundError):
    """Raised when a category is not found"""

    def __init__(self, category_id: Any | None = None):
        super().__init__(
            resource_type="Category",
            resource_id=category_id,
            error_code=ErrorCode.RESOURCE_CATEGORY_NOT_FOUND,
        )


class UserNotFoundError(ResourceNotFoundError):
    """Raised when a token names a user that has no row"""

    def __init__(self, user_id: Any | None = None):
        super().__init__(
            resource_type="User",
            resource_id=user_id,
            error_code=ErrorCode.RESOURCE_USER_NOT_FOUND,
        )


class NoContentFoundError(EngagementError):
    """Raised when a spotlight selection comes back empty"""

    def __init__(self, category_id: Any | None = None):
        message = "No content found"
        if category_id is not None:
            message = "No content found in this category"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"category_id": category_id} if category_id is not None else {},
            error_code=ErrorCode.RESOURCE_NO_CONTENT_FOUND,
        )


# ============================================================================
# Validation Exceptions
# ============================================================================


class ValidationError(EngagementError):
    """Raised when input validation fails"""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
    ):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=error_details,
            error_code=error_code,
        )


class InvalidViewerIdentityError(ValidationError):
    """Raised when a viewer identity is malformed"""

    def __init__(self, message: str = "Invalid viewer identity", field: str | None = None):
        super().__init__(message=message, field=field, error_code=ErrorCode.VALIDATION_INVALID_IDENTITY)


# ============================================================================
# Storage Exceptions
# ============================================================================


class StorageError(EngagementError):
    """
    Raised when a storage operation keeps failing after its retry.

    ``last_known_count`` carries the counter value read before the failure,
    when one is available, so callers can still render something useful.
    """

    def __init__(
        self,
        message: str = "Storage is temporarily unavailable",
        operation: str | None = None,
        last_known_count: int | None = None,
    ):
        details: dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if last_known_count is not None:
            details["last_known_count"] = last_known_count
        self.operation = operation
        self.last_known_count = last_known_count
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details,
            error_code=ErrorCode.STORAGE_UNAVAILABLE,
        )
