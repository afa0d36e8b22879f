"""
Keno Catalog Proxy Error Handling Framework.

Provides structured exceptions for configuration problems, rejected requests
and upstream failures, each carrying the HTTP status it is surfaced with.
"""
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field
from enum import Enum


class ErrorSeverity(str, Enum):
    """Error severity levels."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Error categories for classification."""
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    UPSTREAM_TRANSPORT = "upstream_transport"
    UPSTREAM_APPLICATION = "upstream_application"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    UNKNOWN = "unknown"


class CatalogApiException(Exception):
    """Base exception for all catalog proxy errors."""

    http_status: int = 500

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response."""
        return {
            "error": {
                "type": self.__class__.__name__,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "details": self.details
            }
        }

    def get_full_error_details(self) -> Dict[str, Any]:
        """Get complete error details for MCP responses."""
        return {
            "type": self.__class__.__name__,
            "category": self.category.value,
            "severity": self.severity.value,
            "http_status": self.http_status,
            **self.details
        }


class ConfigurationError(CatalogApiException):
    """Invalid configuration or missing credentials."""

    http_status = 500

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None):
        details = {"missing_fields": missing_fields} if missing_fields else {}
        super().__init__(
            message,
            ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL,
            details
        )


class MethodNotAllowedError(CatalogApiException):
    """Unsupported HTTP method or retrieval mode. No upstream work is done."""

    http_status = 405

    def __init__(self, message: str = "Method Not Allowed", allowed: Optional[List[str]] = None):
        self.allowed = allowed or ["GET", "HEAD"]
        super().__init__(
            message,
            ErrorCategory.METHOD_NOT_ALLOWED,
            ErrorSeverity.WARNING,
            {"allowed": self.allowed}
        )


class ValidationError(CatalogApiException):
    """Malformed request parameters."""

    http_status = 400

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        details = {"field_errors": field_errors} if field_errors else {}
        super().__init__(
            message,
            ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR,
            details
        )


class UpstreamError(CatalogApiException):
    """Base class for failures talking to the Keno API."""

    http_status = 502


class UpstreamTransportError(UpstreamError):
    """
    Keno API transport failure.

    Raised for non-success HTTP statuses, timeouts, connection problems and
    bodies that cannot be decoded as JSON.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        timed_out: bool = False,
        original_error: Optional[Exception] = None
    ):
        details = {
            "status_code": status_code,
            "timed_out": timed_out,
            "original_error": str(original_error) if original_error else None,
            "error_type": type(original_error).__name__ if original_error else None
        }
        super().__init__(
            message,
            ErrorCategory.UPSTREAM_TRANSPORT,
            ErrorSeverity.CRITICAL if (status_code or 0) >= 500 else ErrorSeverity.ERROR,
            details
        )
        self.status_code = status_code
        self.timed_out = timed_out


class UpstreamApplicationError(UpstreamError):
    """Keno API answered at the transport level but flagged an error in the body."""

    def __init__(self, message: str, errors: Any = None, method: Optional[str] = None):
        super().__init__(
            message,
            ErrorCategory.UPSTREAM_APPLICATION,
            ErrorSeverity.ERROR,
            {"errors": errors, "method": method}
        )
        self.errors = errors
        self.method = method


class UpstreamUnavailable(CatalogApiException):
    """
    Uniform outcome for any upstream failure during a request.

    Carries the underlying message; the original exception is chained as
    ``__cause__``.
    """

    http_status = 502

    def __init__(self, message: str, cause: Optional[UpstreamError] = None):
        details = {"cause": cause.get_full_error_details()} if cause else {}
        super().__init__(
            message,
            ErrorCategory.UPSTREAM_UNAVAILABLE,
            ErrorSeverity.ERROR,
            details
        )

    @classmethod
    def from_upstream(cls, error: UpstreamError) -> "UpstreamUnavailable":
        return cls(error.message, error)


def describe_application_errors(errors: Any) -> str:
    """Flatten the vendor ``errors`` field into one readable message."""
    if isinstance(errors, str):
        return errors
    if isinstance(errors, dict):
        return "; ".join(f"{key}: {value}" for key, value in errors.items()) or "Unknown error"
    if isinstance(errors, (list, tuple)):
        parts = [describe_application_errors(item) for item in errors]
        return "; ".join(part for part in parts if part) or "Unknown error"
    return str(errors)


class ErrorResponse(BaseModel):
    """Error body returned by the HTTP route."""
    error: str = Field(..., description="Human readable error message")

    @classmethod
    def from_exception(cls, exception: CatalogApiException) -> "ErrorResponse":
        """Create error response from exception."""
        return cls(error=exception.message)
