"""
Custom exceptions for the Ghoste API.
Provides consistent error handling across the application.
"""
from typing import Optional, Dict, Any

from fastapi import HTTPException, status


class GhosteException(Exception):
    """Base exception for Ghoste"""
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred", code: Optional[str] = None):
        self.message = message
        self.code = code
        super().__init__(self.message)


class NotFoundError(GhosteException):
    """Resource not found"""
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "Resource", resource_id: str = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(message, code="not_found")


class ForbiddenError(GhosteException):
    """Access denied"""
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "You don't have permission to access this resource"):
        super().__init__(message, code="forbidden")


class ValidationError(GhosteException):
    """Validation failed"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Validation failed", field: str = None, code: str = "validation_failed"):
        if field:
            message = f"Validation failed for field '{field}': {message}"
        super().__init__(message, code=code)


class ResolutionError(GhosteException):
    """A required input (creatives, destination) could not be resolved"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.details = details or {}
        super().__init__(message, code=code)


class RateLimitError(GhosteException):
    """Too many requests in the current window"""
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str = "Too many requests, try again later"):
        super().__init__(message, code="rate_limited")


class ExternalServiceError(GhosteException):
    """External service call failed"""
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(
        self,
        service: str = "External service",
        message: str = None,
        stage: Optional[str] = None,
        partial_ids: Optional[Dict[str, Optional[str]]] = None,
        raw: Optional[Dict[str, Any]] = None,
    ):
        msg = f"{service} call failed"
        if message:
            msg = f"{msg}: {message}"
        self.service = service
        self.stage = stage
        self.partial_ids = partial_ids or {}
        self.raw = raw or {}
        super().__init__(msg, code="external_service_error")


# HTTP Exception helpers
def raise_not_found(resource: str = "Resource", resource_id: str = None):
    """Raise 404 HTTPException"""
    err = NotFoundError(resource, resource_id)
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=err.message)


def raise_unauthorized(message: str = "Could not validate credentials"):
    """Raise 401 HTTPException"""
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )

