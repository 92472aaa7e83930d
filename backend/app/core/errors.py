"""Error Hierarchy - typed, categorized exceptions for all blog failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope; from_response() rebuilds it client-side
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with BlogError base: the FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    TRANSPORT = "transport"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    post_id: str | None = None
    user_id: str | None = None
    connection_id: str | None = None
    debug_info: dict[str, Any] | None = None


class BlogError(Exception):
    """Base exception for all blog errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "post_id": self.context.post_id,
                    "user_id": self.context.user_id,
                },
            }
        }


# --- Domain Errors (400-level) -----------------------------------------------

class ValidationFailedError(BlogError):
    """Create/update payload failed validation. Carries itemized field messages."""
    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.details = details or []

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"]["details"] = self.details
        return response


class AuthenticationRequiredError(BlogError):
    """Missing or unknown bearer credential on a protected route."""
    def __init__(self, message: str = "Authentication required", context: ErrorContext | None = None):
        super().__init__(
            message, "AUTHENTICATION_REQUIRED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class NotAuthorizedError(BlogError):
    """Caller is neither the owner nor an administrator."""
    def __init__(self, action: str, context: ErrorContext | None = None):
        super().__init__(
            f"Not authorized to {action}",
            "NOT_AUTHORIZED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.ERROR, context, 403,
        )
        self.action = action


class ResourceNotFoundError(BlogError):
    """Requested resource does not exist (possibly deleted by another session)."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConnectionTransitionError(BlogError):
    """Illegal synchronization client state transition."""
    def __init__(self, current: str, attempted: str):
        super().__init__(
            f"Cannot {attempted} while {current}",
            "INVALID_CONNECTION_TRANSITION", ErrorCategory.INTERNAL,
            ErrorSeverity.ERROR, None, 500,
        )
        self.current = current
        self.attempted = attempted


# --- Infrastructure Errors (500-level) ---------------------------------------

class DatabaseError(BlogError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class ChannelTransportError(BlogError):
    """Event channel connection refused, rejected, or dropped."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CHANNEL_TRANSPORT_ERROR", ErrorCategory.TRANSPORT,
            ErrorSeverity.WARNING, context, 503,
        )


class ApiUnavailableError(BlogError):
    """REST API unreachable or answered with a server error."""
    def __init__(self, message: str, http_status: int = 503, context: ErrorContext | None = None):
        super().__init__(
            message, "API_UNAVAILABLE", ErrorCategory.TRANSPORT,
            ErrorSeverity.CRITICAL, context, http_status,
        )


# --- Client-side reconstruction ----------------------------------------------

def from_response(http_status: int, body: object) -> BlogError:
    """Rebuild a typed error from a REST error envelope. Any other body shape is ignored."""
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        error = {}
    message = error.get("message") or f"Request failed with status {http_status}"
    if http_status == 400:
        details = error.get("details")
        return ValidationFailedError(message, details if isinstance(details, list) else [])
    if http_status == 401:
        return AuthenticationRequiredError(message)
    if http_status == 403:
        exc = NotAuthorizedError("perform this action")
        exc.message = message
        return exc
    if http_status == 404:
        exc = ResourceNotFoundError("Resource", "unknown")
        exc.message = message
        return exc
    return ApiUnavailableError(message, http_status=http_status)
