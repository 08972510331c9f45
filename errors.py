"""
Application error hierarchy.

AppError is the base for all typed errors. Each subclass carries the
status code and machine-readable error code a caller's transport layer
should surface.

Redis failures are not wrapped where they happen; to_app_error() lets the
caller's error layer classify them as StoreUnavailableError (an
infrastructure fault) instead of a user error.
"""

from __future__ import annotations

from typing import Any, Optional

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class VerificationFailedError(ValidationError):
    """Wrong, expired or exhausted code. The three are never told apart."""

    error_code = "verification_failed"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class InvalidOrExpiredSessionError(AuthenticationError):
    """Session id never existed, expired or was already deleted."""

    error_code = "invalid_session"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class RateLimitExceededError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"


class StoreUnavailableError(AppError):
    status_code = 503
    error_code = "store_unavailable"


def to_app_error(exc: BaseException) -> AppError:
    """Classify *exc* for a transport layer.

    AppError instances are returned unchanged. Redis connectivity failures
    become StoreUnavailableError; anything else is a generic 500.
    """
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, (RedisConnectionError, RedisTimeoutError)):
        err = StoreUnavailableError("Verification store is unavailable.")
        err.__cause__ = exc
        return err
    err = AppError("An internal server error occurred.")
    err.__cause__ = exc
    return err
