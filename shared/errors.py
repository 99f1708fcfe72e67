"""
Shared error handling for the session service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class SessionLayerException(Exception):
    """Base exception for session service components."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class CacheUnavailableError(SessionLayerException):
    """The distributed cache could not be reached or rejected the call."""

    def __init__(self, operation: str, key: str, message: str = "Distributed cache unavailable",
                 details: Optional[Dict[str, Any]] = None):
        self.operation = operation
        self.key = key
        merged = {"operation": operation, "key": key}
        merged.update(details or {})
        super().__init__("CACHE_UNAVAILABLE", f"{operation} {key}: {message}", merged)


class SessionSerializationError(SessionLayerException):
    """A cached session payload could not be decoded."""

    def __init__(self, message: str = "Invalid session payload", details: Optional[Dict[str, Any]] = None):
        super().__init__("SESSION_SERIALIZATION_ERROR", message, details)


class SessionConfigurationError(SessionLayerException):
    """A session component was wired with a missing dependency."""

    def __init__(self, message: str = "Session is not configured", details: Optional[Dict[str, Any]] = None):
        super().__init__("SESSION_CONFIGURATION_ERROR", message, details)


class SessionNotLoadedError(SessionLayerException):
    """Synchronous access was attempted before the session was loaded."""

    def __init__(self, message: str = "Session has not been loaded", details: Optional[Dict[str, Any]] = None):
        super().__init__("SESSION_NOT_LOADED", message, details)
