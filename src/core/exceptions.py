"""Custom exceptions for the application."""

from typing import Any, Dict, Optional


class BaseAPIException(Exception):
    """Base exception for all API exceptions."""
    
    def __init__(
        self,
        message: str = "An error occurred",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(BaseAPIException):
    """Raised when validation fails."""
    
    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 422, details)


class NotFoundError(BaseAPIException):
    """Raised when a resource is not found."""
    
    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 404, details)


class UnauthorizedError(BaseAPIException):
    """Raised when authentication fails."""
    
    def __init__(self, message: str = "Unauthorized", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 401, details)


class ForbiddenError(BaseAPIException):
    """Raised when user lacks permissions."""
    
    def __init__(self, message: str = "Forbidden", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 403, details)


class BadRequestError(BaseAPIException):
    """Raised when the request is malformed."""
    
    def __init__(self, message: str = "Bad request", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 400, details)


class InvalidBookmarkError(BadRequestError):
    """Raised when a pagination bookmark does not belong to the current collection.

    Callers must restart pagination from the first page.
    """

    def __init__(self, message: str = "Invalid pagination bookmark", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class UpstreamReadFailure(BaseAPIException):
    """Raised when a read against the local or global partition fails.

    Fatal for the whole request: partial merges are never served.
    """

    def __init__(
        self,
        message: str = "Upstream read failed",
        partition: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        full_details = details or {}
        if partition:
            full_details["partition"] = partition
        super().__init__(message, 503, full_details)
        self.partition = partition
