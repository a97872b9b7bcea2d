"""
Shared error handling for the weather lookup service.
"""

from typing import Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    error: Optional[str] = None


class WeatherServiceException(Exception):
    """Base exception for weather service errors surfaced over HTTP."""

    status_code: int = 500

    def __init__(self, code: str, message: str, error: Optional[str] = None,
                 status_code: Optional[int] = None):
        self.code = code
        self.message = message
        self.error = error
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(code=self.code, message=self.message, error=self.error)


class ValidationError(WeatherServiceException):
    """Malformed client input."""

    status_code = 400

    def __init__(self, message: str = "Invalid city name", error: Optional[str] = None):
        super().__init__("VALIDATION_ERROR", message, error)


class ServiceUnavailableError(WeatherServiceException):
    """Upstream failed and no cached data exists to fall back on."""

    status_code = 503

    def __init__(self, message: str = "Weather service unavailable", error: Optional[str] = None):
        super().__init__("SERVICE_UNAVAILABLE", message, error)


class RateLimitError(WeatherServiceException):
    """Rate limiting errors."""

    status_code = 429

    def __init__(self, message: str = "Too Many Requests", error: Optional[str] = None,
                 retry_after: Optional[int] = None):
        super().__init__("RATE_LIMIT_ERROR", message, error or "Rate limit exceeded")
        self.retry_after = retry_after


class UpstreamError(Exception):
    """The upstream weather provider failed or returned an unusable payload.

    Never rendered to clients; the lookup path converts it into a stale
    fallback or a ``ServiceUnavailableError``.
    """

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")
