"""
Photo Enhancement Backend — Custom Exception Hierarchy
=======================================================

What:  Application-specific exceptions for the different failure scenarios.
How:   Each exception carries a user-safe message and an optional context dict.
       Global exception handlers (registered in main.py) translate them into
       structured JSON responses with the right HTTP status code.
Who:   Raised by services and route dependencies; caught by global handlers
       or, for DispatchError, by the queue dispatcher itself.

Exception Hierarchy:
    PhotoEnhanceError (base)
    ├── AuthorizationError     → 401 Unauthorized (bad or missing cron secret)
    ├── DispatchError          → recovered per item; never reaches a handler
    ├── QueueProcessingError   → 500 with {error, details} (batch-fatal)
    └── DatabaseError          → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class PhotoEnhanceError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class AuthorizationError(PhotoEnhanceError):
    """
    Raised when a caller fails the cron bearer-secret check.

    When:    Authorization header missing, not a Bearer token, or not one of
             the configured CRON_SECRETS.
    HTTP:    401 Unauthorized, raised before any storage access.
    """

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DispatchError(PhotoEnhanceError):
    """
    Raised when one call to the enhancement endpoint fails.

    What:    The endpoint answered with a non-2xx status, or the request never
             completed (connection refused, DNS failure, timeout, ...).
    Who:     Raised by EnhancementClient; caught by QueueService, which counts
             the error and marks the photo FAILED. The batch continues.

    Attributes:
        photo_id:     The photo whose dispatch failed
        status_code:  HTTP status of the response, None for transport failures
        body:         Truncated response body, for the logs
    """

    def __init__(
        self,
        photo_id: str,
        status_code: Optional[int] = None,
        body: str = "",
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            if status_code is not None:
                message = f"Enhancement request for photo {photo_id} returned HTTP {status_code}"
            else:
                message = f"Enhancement request for photo {photo_id} could not be completed"
        ctx = context or {}
        ctx["photo_id"] = photo_id
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.photo_id = photo_id
        self.status_code = status_code
        self.body = body


class QueueProcessingError(PhotoEnhanceError):
    """
    Raised when a queue run fails as a whole.

    When:    The initial batch read fails, a FAILED-state write fails, or any
             unexpected exception escapes the per-item handling.
    HTTP:    500, body {"error": message, "details": details}.
    """

    def __init__(
        self,
        details: str = "",
        message: str = "Cron job failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.details = details


class DatabaseError(PhotoEnhanceError):
    """
    Raised when database operations fail outside a queue run.

    HTTP:    500 Internal Server Error. The message returned to the client is
             always generic; query details are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
