"""
DevDoc Backend — Custom Exception Hierarchy
=============================================

What:  Defines application-specific exceptions for different error scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services, dependencies and middleware; caught by global handlers.

Exception Hierarchy:
    DevDocError (base)                → 500
    ├── ValidationError               → 400 Bad Request
    ├── ConflictError                 → 400 Bad Request (duplicate email)
    ├── InvalidCredentialsError       → 400 Bad Request (login failed)
    ├── UnauthorizedError             → 401 Unauthorized
    ├── NotFoundError                 → 404 Not Found (also: not owned by caller)
    ├── RateLimitExceededError        → 429 Too Many Requests
    ├── FileStorageError              → 500 Internal Server Error
    └── DatabaseError                 → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class DevDocError(Exception):
    """
    Base exception for all DevDoc application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code = 500
    code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(DevDocError):
    """
    Raised when client input fails validation.

    When:    Missing name/title/code/url, disallowed file type, oversized upload.
    HTTP:    400 Bad Request
    """

    status_code = 400
    code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ConflictError(DevDocError):
    """Raised when registering an email that already has an account."""

    status_code = 400
    code = "conflict"

    def __init__(
        self,
        message: str = "Email already in use",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidCredentialsError(DevDocError):
    """
    Raised when login fails.

    The message is identical for an unknown email and a wrong password so
    callers cannot probe which accounts exist.
    """

    status_code = 400
    code = "invalid_credentials"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Invalid credentials", context=context)


class UnauthorizedError(DevDocError):
    """
    Raised by the auth gate.

    When:    No bearer token, token malformed/expired/badly signed, or the
             token's user no longer exists.
    HTTP:    401 Unauthorized (with WWW-Authenticate: Bearer)
    """

    status_code = 401
    code = "unauthorized"

    def __init__(
        self,
        message: str = "Not authenticated",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(DevDocError):
    """
    Raised when a requested resource does not exist.

    A project owned by someone else is reported exactly like a missing one,
    so the message never depends on whether the row exists.
    HTTP:    404 Not Found
    """

    status_code = 404
    code = "not_found"

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class FileStorageError(DevDocError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, directory not writable, I/O error.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(DevDocError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; the driver error
    is kept in `context` for the server log only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(DevDocError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with a Retry-After header
    """

    status_code = 429
    code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many requests. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
