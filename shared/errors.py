"""
Shared error handling for the content gateway.

Every error raised below the route layer derives from
``ContentGatewayException`` and carries the HTTP status it maps to, so route
handlers can raise and let the service-wide exception handler render the
structured JSON envelope.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    code: str
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class ContentGatewayException(Exception):
    """Base exception for content gateway services."""

    status_code = 500

    def __init__(
        self,
        code: str,
        error: str,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.error = error
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message or error)

    def to_response(self, include_details: bool = False) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            error=self.error,
            code=self.code,
            message=self.message,
            details=self.details if include_details and self.details else None,
        )


class UnauthorizedError(ContentGatewayException):
    """Token mismatch on a protected endpoint."""

    status_code = 401

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        # Never echo the expected secret or which check failed
        super().__init__("UNAUTHORIZED", "Invalid token", None, details)


class BadRequestError(ContentGatewayException):
    """Missing or malformed request parameters."""

    status_code = 400

    def __init__(self, message: str = "Bad request", code: str = "BAD_REQUEST", details: Optional[Dict[str, Any]] = None):
        super().__init__(code, "Bad request", message, details)


class NotFoundError(ContentGatewayException):
    """The content backend has no item for a by-identifier lookup."""

    status_code = 404

    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", "Not found", message, details)


class UpstreamUnavailableError(ContentGatewayException):
    """Content backend unreachable or answered with a non-success status."""

    status_code = 500

    def __init__(
        self,
        service: str,
        message: str = "Upstream request failed",
        upstream_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.service = service
        self.upstream_status = upstream_status
        self.upstream_message = message
        merged = {"service": service, "upstream_status": upstream_status, "reason": message}
        merged.update(details or {})
        super().__init__(
            "UPSTREAM_UNAVAILABLE",
            "Upstream unavailable",
            "The content service is temporarily unavailable",
            merged,
        )

    def __str__(self) -> str:
        status = self.upstream_status if self.upstream_status is not None else "n/a"
        return f"{self.service}: {self.upstream_message} (status {status})"
