"""
Response envelopes for the catalog proxy's MCP tools.

The HTTP route serves the catalog payload itself; MCP tools wrap it in the
standard success/error envelopes below.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_serializer

from api.errors import (
    CatalogApiException,
    ConfigurationError,
    MethodNotAllowedError,
    UpstreamError,
    UpstreamUnavailable,
    ValidationError,
)


class ResponseStatus(str, Enum):
    """Standard response status values."""

    SUCCESS = "success"
    ERROR = "error"


class ErrorCode(str, Enum):
    """Standard error codes for tool responses."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class MCPToolResponse(BaseModel):
    """
    Standard response format for all MCP tools.

    This ensures consistent response structure across all tools,
    making it easier for LLMs to parse and understand results.
    """

    status: ResponseStatus
    data: Optional[Any] = None
    message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=datetime.now)

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        """Serialize timestamp to ISO format."""
        return value.isoformat()

    def to_json_string(self, **kwargs) -> str:
        """Convert response to JSON string."""
        return self.model_dump_json(exclude_none=True, **kwargs)


class MCPErrorResponse(BaseModel):
    """
    Standard error response format for MCP operations.

    Provides detailed error information while maintaining
    consistency across all error scenarios.
    """

    status: ResponseStatus = ResponseStatus.ERROR
    error_code: ErrorCode
    error_message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=datetime.now)

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        """Serialize timestamp to ISO format."""
        return value.isoformat()

    def to_json_string(self, **kwargs) -> str:
        """Convert error response to JSON string."""
        return self.model_dump_json(exclude_none=True, **kwargs)


def success_response(
    data: Any = None,
    message: str = "Operation completed successfully",
    metadata: Optional[Dict[str, Any]] = None,
) -> MCPToolResponse:
    """Create a standardized success response."""
    return MCPToolResponse(
        status=ResponseStatus.SUCCESS, data=data, message=message, metadata=metadata
    )


def error_response(
    error_code: ErrorCode,
    error_message: str,
    details: Optional[Dict[str, Any]] = None,
) -> MCPErrorResponse:
    """Create a standardized error response."""
    return MCPErrorResponse(
        error_code=error_code,
        error_message=error_message,
        details=details,
    )


def error_code_for(exception: CatalogApiException) -> ErrorCode:
    """Map a proxy exception onto a tool error code."""
    if isinstance(exception, ConfigurationError):
        return ErrorCode.CONFIGURATION_ERROR
    if isinstance(exception, ValidationError):
        return ErrorCode.VALIDATION_ERROR
    if isinstance(exception, MethodNotAllowedError):
        return ErrorCode.METHOD_NOT_ALLOWED
    if isinstance(exception, (UpstreamUnavailable, UpstreamError)):
        return ErrorCode.EXTERNAL_API_ERROR
    return ErrorCode.INTERNAL_ERROR
