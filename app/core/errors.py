"""
Error Handling
==============

Standardized error codes, typed domain failures and exception handlers.

Every ``AppException`` carries a ``kind`` tag so callers can branch on the
failure category (``not_found``, ``forbidden``, ``conflict``, ``inactive``,
``already_deleted``, ...) without parsing messages or status codes.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError

logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """Standardized error codes."""

    # Authentication (AUTH_001 - AUTH_010)
    AUTH_INVALID_CREDENTIALS = "AUTH_001"
    AUTH_INVALID_TOKEN = "AUTH_002"
    AUTH_ACCOUNT_EXISTS = "AUTH_003"

    # Habits (HABIT_001 - HABIT_010)
    HABIT_NOT_FOUND = "HABIT_001"
    HABIT_INACTIVE = "HABIT_002"
    HABIT_ALREADY_DELETED = "HABIT_003"

    # Tags (TAG_001 - TAG_010)
    TAG_NOT_FOUND = "TAG_001"
    TAG_SYSTEM_IMMUTABLE = "TAG_002"
    TAG_ALREADY_DELETED = "TAG_003"

    # Users
    USER_ALREADY_DELETED = "USER_ALREADY_DELETED"

    # Rate Limit
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT"

    # General
    CONFLICT = "CONFLICT"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"


# =============================================================================
# Custom Exceptions
# =============================================================================

class AppException(HTTPException):
    """Base application exception with structured error response."""

    kind = "error"

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        field: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        **extra,
    ):
        self.code = code
        self.message = message
        self.field = field
        self.extra = extra

        detail = {
            "code": code,
            "message": message,
            "kind": self.kind,
        }

        if field:
            detail["field"] = field

        detail.update(extra)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


class AuthenticationError(AppException):
    """Authentication-related errors."""

    kind = "unauthorized"

    def __init__(
        self,
        code: str = ErrorCodes.AUTH_INVALID_CREDENTIALS,
        message: str = "Authentication failed",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code=code,
            message=message,
            headers={"WWW-Authenticate": "Bearer"},
            **extra,
        )


class NotFoundError(AppException):
    """Resource missing, owned by someone else, or soft-deleted."""

    kind = "not_found"

    def __init__(
        self,
        code: str = ErrorCodes.NOT_FOUND,
        message: str = "Resource not found",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            code=code,
            message=message,
            **extra,
        )


class ConflictError(AppException):
    """Uniqueness violations surfaced from storage."""

    kind = "conflict"

    def __init__(
        self,
        code: str = ErrorCodes.CONFLICT,
        message: str = "Resource already exists",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            code=code,
            message=message,
            **extra,
        )


class ForbiddenError(AppException):
    """Ownership or immutability violations."""

    kind = "forbidden"

    def __init__(
        self,
        code: str = ErrorCodes.TAG_SYSTEM_IMMUTABLE,
        message: str = "Access denied",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            code=code,
            message=message,
            **extra,
        )


class InvalidStateError(AppException):
    """The target exists but is in a state that forbids the operation."""

    kind = "invalid_state"

    def __init__(
        self,
        code: str,
        message: str,
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code=code,
            message=message,
            **extra,
        )


class HabitInactiveError(InvalidStateError):
    """Completing a habit whose is_active flag is false."""

    kind = "inactive"

    def __init__(self, message: str = "Cannot complete an inactive habit", **extra):
        super().__init__(code=ErrorCodes.HABIT_INACTIVE, message=message, **extra)


class AlreadyDeletedError(InvalidStateError):
    """Soft-deleting a row whose deleted_at is already set."""

    kind = "already_deleted"

    def __init__(
        self,
        code: str = ErrorCodes.HABIT_ALREADY_DELETED,
        message: str = "Resource has already been deleted",
        **extra,
    ):
        super().__init__(code=code, message=message, **extra)


class ServiceUnavailableError(AppException):
    """Transient storage/connectivity failure; the caller may retry."""

    kind = "transient"

    def __init__(
        self,
        code: str = ErrorCodes.SERVICE_UNAVAILABLE,
        message: str = "Service temporarily unavailable",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code=code,
            message=message,
            **extra,
        )


class RateLimitError(AppException):
    """Too many requests within the current window."""

    kind = "rate_limited"

    def __init__(self, reset_in: int, limit: int, remaining: int = 0):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            code=ErrorCodes.RATE_LIMIT_EXCEEDED,
            message=f"Too many requests. Try again in {reset_in} seconds.",
            headers={
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Remaining": str(remaining),
                "X-RateLimit-Reset": str(reset_in),
                "Retry-After": str(reset_in),
            },
        )


# =============================================================================
# Storage error translation
# =============================================================================

UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when an IntegrityError came from a unique constraint/index."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION_SQLSTATE
    return "unique" in str(orig).lower()


def is_transient(exc: BaseException) -> bool:
    """True for connectivity failures that a retry may resolve."""
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, (ConnectionError, TimeoutError))


# =============================================================================
# Exception Handlers
# =============================================================================

def _error_response(status_code: int, error: dict, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": error,
        },
        headers=headers,
    )


async def app_exception_handler(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    """Handler for AppException."""
    return _error_response(exc.status_code, exc.detail, exc.headers)


async def http_exception_handler(
    request: Request,
    exc: HTTPException,
) -> JSONResponse:
    """Handler for standard HTTPException."""
    # Check if detail is already structured
    if isinstance(exc.detail, dict) and "code" in exc.detail:
        error = exc.detail
    else:
        error = {
            "code": "HTTP_ERROR",
            "message": str(exc.detail),
        }

    return _error_response(exc.status_code, error, getattr(exc, "headers", None))


async def validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handler for request validation errors."""
    errors = exc.errors() if hasattr(exc, "errors") else []
    if errors:
        first_error = errors[0]
        field = ".".join(str(loc) for loc in first_error.get("loc", []))
        message = first_error.get("msg", "Validation error")
    else:
        field = None
        message = str(exc) or "Validation error"

    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        {
            "code": ErrorCodes.VALIDATION_ERROR,
            "message": message,
            "kind": "validation",
            "field": field,
            "details": [
                {"fields": ".".join(str(loc) for loc in e.get("loc", [])), "message": e.get("msg")}
                for e in errors
            ],
        },
    )


async def integrity_exception_handler(
    request: Request,
    exc: IntegrityError,
) -> JSONResponse:
    """Unique violations become 409; other integrity failures are internal."""
    if is_unique_violation(exc):
        return await app_exception_handler(request, ConflictError())
    return await global_exception_handler(request, exc)


async def database_exception_handler(
    request: Request,
    exc: DBAPIError,
) -> JSONResponse:
    """Connectivity failures become 503; anything else is internal."""
    if is_transient(exc):
        logger.warning("Database unavailable: %s", type(exc).__name__)
        return await app_exception_handler(
            request,
            ServiceUnavailableError(
                message="Could not connect to the database. Please try again later.",
            ),
        )
    return await global_exception_handler(request, exc)


async def global_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handler for unhandled exceptions."""
    if is_transient(exc):
        return await database_exception_handler(request, exc)

    logger.exception(
        "Unhandled error on %s %s: %s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc_info=exc,
    )

    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {
            "code": ErrorCodes.INTERNAL_ERROR,
            "message": "An unexpected error occurred",
        },
    )


def setup_exception_handlers(app):
    """
    Register exception handlers with FastAPI app.

    Usage:
        from app.core.errors import setup_exception_handlers
        setup_exception_handlers(app)
    """
    from fastapi.exceptions import RequestValidationError
    from pydantic import ValidationError as PydanticValidationError

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_exception_handler)
    app.add_exception_handler(DBAPIError, database_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
