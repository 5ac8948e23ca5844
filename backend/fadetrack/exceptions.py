"""
Fadetrack Backend: Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions, one per HTTP outcome.
How:   Each exception carries a user-facing `message` and a `context` dict.
       Global handlers registered in `fadetrack.main` turn them into JSON
       error responses with the matching status code.
Who:   Raised by services, routes and middleware.

Exception Hierarchy:
    FadetrackError (base)
    ├── ValidationError            → 400 Bad Request
    ├── NotFoundError              → 404 Not Found (also "not yours")
    ├── ConflictError              → 409 Conflict
    ├── UsageLimitExceededError    → 429 Too Many Requests (AI quota)
    ├── RateLimitExceededError     → 429 Too Many Requests (per-IP)
    ├── FileStorageError           → 500 Internal Server Error
    ├── DatabaseError              → 500 Internal Server Error
    ├── ServiceMisconfiguredError  → 500 Internal Server Error
    ├── UpstreamServiceError       → upstream status, default 500
    └── CircuitBreakerOpenError    → 503 Service Unavailable

Upstream and database failures surface their underlying message to the
client; nothing is retried automatically.
"""

from typing import Any, Dict, Optional


class FadetrackError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (returned in the response)
        context:  Extra structured detail for logs and the `details` field
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(FadetrackError):
    """
    Client input failed a business rule (missing field, rating out of range,
    wrong confirmation phrase, unsupported upload).

    Example response:
        {
            "error": "validation_error",
            "message": "Rating must be between 1 and 5",
            "details": {"field": "rating"}
        }
    """

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


class NotFoundError(FadetrackError):
    """
    The resource does not exist, or exists but belongs to someone else.

    Ownership failures raise this class too, so the response is the same
    whether or not another user's record exists.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(FadetrackError):
    """A unique record already exists (e.g. a second professional profile)."""

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UsageLimitExceededError(FadetrackError):
    """
    An identity used up its AI search quota for the day or the month.

    `period` is "daily" or "monthly"; `retry_after` is the number of seconds
    until the counter for that period resets.
    """

    def __init__(
        self,
        period: str,
        limit: int,
        used: int,
        retry_after: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        if period == "daily":
            message = f"Daily limit of {limit} AI searches reached. Please try again tomorrow."
        else:
            message = f"Monthly limit of {limit} AI searches reached. Please try again next month."
        ctx = context or {}
        ctx.update({"period": period, "limit": limit, "used": used, "retry_after": retry_after})
        super().__init__(message=message, context=ctx)
        self.period = period
        self.limit = limit
        self.retry_after = retry_after


class RateLimitExceededError(FadetrackError):
    """A client IP sent too many requests within the sliding window."""

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class FileStorageError(FadetrackError):
    """Writing to or reading from the object storage volume failed."""

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(FadetrackError):
    """
    A query or write failed.

    The message names the failed operation and carries the driver's
    message, e.g. "Failed to create review: UNIQUE constraint failed".
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ServiceMisconfiguredError(FadetrackError):
    """A required credential or identifier is missing from the environment."""

    def __init__(
        self,
        message: str = "Server misconfiguration",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=f"Server misconfiguration: {message}", context=context)


class UpstreamServiceError(FadetrackError):
    """
    A third-party API (AI workflow, Gemini, ChatKit, Resend) failed.

    `status_code` defaults to 500. ChatKit session creation passes the
    upstream status through unchanged.
    """

    def __init__(
        self,
        service: str,
        message: str,
        status_code: int = 500,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["service"] = service
        super().__init__(message=message, context=ctx)
        self.service = service
        self.status_code = status_code


class CircuitBreakerOpenError(FadetrackError):
    """
    Raised while the AI upstream circuit breaker is OPEN.

    CLOSED → (threshold consecutive failures) → OPEN → (recovery timeout)
    → HALF_OPEN → one trial call → CLOSED on success, OPEN on failure.
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "AI search is temporarily unavailable due to repeated failures. "
            f"Please try again in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
