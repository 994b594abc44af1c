"""Domain errors raised by services and translated to HTTP responses in main.py."""

from sqlalchemy.exc import IntegrityError
from .schemas import ErrorCode


class AppError(Exception):
    """Base class for errors that map directly to an HTTP status and error code."""

    status_code = 500
    error = ErrorCode.INTERNAL_ERROR
    message = "Internal server error"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.message
        self.details = details or {}
        super().__init__(self.message)


class InvalidCredentials(AppError):
    status_code = 401
    error = ErrorCode.INVALID_CREDENTIALS
    message = "Invalid credentials"


class InvalidToken(AppError):
    status_code = 401
    error = ErrorCode.INVALID_TOKEN
    message = "Invalid refresh token"


class ExpiredToken(InvalidToken):
    message = "Token has expired"


class Unauthorized(AppError):
    status_code = 401
    error = ErrorCode.UNAUTHORIZED
    message = "Authentication required"


class Forbidden(AppError):
    status_code = 403
    error = ErrorCode.FORBIDDEN
    message = "Insufficient permissions"


class NotFound(AppError):
    status_code = 404
    error = ErrorCode.NOT_FOUND
    message = "Resource not found"


class NotFoundOrAlreadyClaimed(NotFound):
    error = ErrorCode.ALREADY_CLAIMED
    message = "Profile not found or already claimed"


class Conflict(AppError):
    status_code = 409
    error = ErrorCode.CONFLICT
    message = "Resource already exists"


class DuplicateEmail(Conflict):
    error = ErrorCode.DUPLICATE_EMAIL
    message = "User with this email already exists"


class BadRequest(AppError):
    status_code = 400
    error = ErrorCode.VALIDATION_ERROR
    message = "Invalid request"


class InvalidOrExpiredToken(BadRequest):
    error = ErrorCode.INVALID_RESET_TOKEN
    message = "Invalid or expired reset token"


# ==================== Constraint Violations ====================

# (status, error code, message) keyed by PostgreSQL sqlstate or SQLite error name
CONSTRAINT_VIOLATIONS = {
    "23505": (409, ErrorCode.CONFLICT, "Resource already exists"),
    "23503": (400, ErrorCode.INVALID_REFERENCE, "Referenced resource does not exist"),
    "23502": (400, ErrorCode.VALIDATION_ERROR, "Required field is missing"),
    "23514": (400, ErrorCode.VALIDATION_ERROR, "Value violates a check constraint"),
    "SQLITE_CONSTRAINT_UNIQUE": (409, ErrorCode.CONFLICT, "Resource already exists"),
    "SQLITE_CONSTRAINT_PRIMARYKEY": (409, ErrorCode.CONFLICT, "Resource already exists"),
    "SQLITE_CONSTRAINT_FOREIGNKEY": (400, ErrorCode.INVALID_REFERENCE, "Referenced resource does not exist"),
    "SQLITE_CONSTRAINT_NOTNULL": (400, ErrorCode.VALIDATION_ERROR, "Required field is missing"),
    "SQLITE_CONSTRAINT_CHECK": (400, ErrorCode.VALIDATION_ERROR, "Value violates a check constraint"),
}

DEFAULT_CONSTRAINT_VIOLATION = (400, ErrorCode.VALIDATION_ERROR, "Constraint violation")


def _constraint_key(exc: IntegrityError) -> str | None:
    """Pull the sqlstate (asyncpg) or error name (sqlite3) off the wrapped driver error."""
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        for attr in ("sqlstate", "pgcode", "sqlite_errorname"):
            value = getattr(candidate, attr, None)
            if value:
                return value
    return None


def classify_integrity_error(exc: IntegrityError) -> tuple[int, str, str]:
    """Map a constraint violation onto (status, error code, message)."""
    return CONSTRAINT_VIOLATIONS.get(_constraint_key(exc), DEFAULT_CONSTRAINT_VIOLATION)
