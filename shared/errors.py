"""
Shared error handling for the Kratos Session Access Layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel
from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class IdentityLayerException(Exception):
    """Base exception for identity layer services."""

    status_code: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        # Get trace ID from current span
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class AuthenticationError(IdentityLayerException):
    """Authentication-related errors."""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None,
                 code: str = "AUTHENTICATION_ERROR"):
        super().__init__(code, message, details)


class MissingCredentialError(AuthenticationError):
    """No credential transport yielded a session token."""

    def __init__(self, message: str = "Session token required", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="MISSING_CREDENTIAL")


class EmptyCredentialError(AuthenticationError):
    """A session token was passed to the gateway but it is empty."""

    def __init__(self, message: str = "Session token is required", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="EMPTY_CREDENTIAL")


class InvalidSessionError(AuthenticationError):
    """The identity provider rejected the session or reported it inactive."""

    def __init__(self, message: str = "Invalid session", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="INVALID_SESSION")


class UnauthenticatedError(AuthenticationError):
    """A principal was required but none is bound to the request."""

    def __init__(self, message: str = "Authentication required", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="UNAUTHENTICATED")


class ExternalServiceError(IdentityLayerException):
    """External service errors."""

    status_code = 502

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None,
                 code: str = "EXTERNAL_SERVICE_ERROR"):
        self.service = service
        super().__init__(code, f"{service}: {message}", details)


class GatewayTransportError(ExternalServiceError):
    """Network or protocol failure talking to the identity provider."""

    status_code = 503

    def __init__(self, message: str = "Identity provider unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("kratos", message, details, code="GATEWAY_TRANSPORT_ERROR")


class IdentityNotFoundError(IdentityLayerException):
    """The identity provider does not know the requested identity."""

    status_code = 404

    def __init__(self, message: str = "Identity not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("IDENTITY_NOT_FOUND", message, details)


class IdentityUpdateError(ExternalServiceError):
    """Identity update rejected by the identity provider."""

    def __init__(self, message: str = "Failed to update identity", details: Optional[Dict[str, Any]] = None):
        super().__init__("kratos", message, details, code="IDENTITY_UPDATE_FAILED")


class IdentityDeleteError(ExternalServiceError):
    """Identity deletion rejected by the identity provider."""

    def __init__(self, message: str = "Failed to delete identity", details: Optional[Dict[str, Any]] = None):
        super().__init__("kratos", message, details, code="IDENTITY_DELETE_FAILED")


class SessionListError(ExternalServiceError):
    """Session listing rejected by the identity provider."""

    def __init__(self, message: str = "Failed to list sessions", details: Optional[Dict[str, Any]] = None):
        super().__init__("kratos", message, details, code="SESSION_LIST_FAILED")


class SessionRevokeError(ExternalServiceError):
    """Session revocation rejected by the identity provider."""

    def __init__(self, message: str = "Failed to revoke session", details: Optional[Dict[str, Any]] = None):
        super().__init__("kratos", message, details, code="SESSION_REVOKE_FAILED")
