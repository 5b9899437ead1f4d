"""
Error taxonomy for the booking API.

Every error is an ``HTTPException`` so services can raise it directly and
FastAPI turns it into a JSON response. None of them are retried.
"""

from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Something went wrong"

    def __init__(self, detail: str | None = None, headers: dict[str, str] | None = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


class ValidationError(AppError):
    """Malformed input. Raised before any state is mutated."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid email or password"


class PermissionDeniedError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied"


class InvalidCodeError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Invalid verification code"


class ExpiredError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Verification code has expired. Please request a new one."


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class RateLimitedError(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Too many failed login attempts. Please try again later."

    def __init__(self, retry_after_seconds: int | None = None):
        headers = None
        if retry_after_seconds is not None:
            headers = {"Retry-After": str(max(retry_after_seconds, 1))}
        super().__init__(headers=headers)


class PersistenceError(AppError):
    """The database call failed. Callers log the cause; clients get a generic message."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Database error"


class NotificationError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Verification email could not be sent"
