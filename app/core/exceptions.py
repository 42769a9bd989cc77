"""
Domain errors raised by the authentication core and the handlers that map
them onto HTTP responses.

Services raise these; routes never build error payloads for them by hand.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class AuthServiceError(Exception):
    """Base class for errors that carry an HTTP status."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(AuthServiceError):
    status_code = 400
    message = "Invalid request"


class RateLimitedError(AuthServiceError):
    status_code = 429
    message = "Too many login attempts"

    def __init__(self, reason: str, reset_time: Optional[datetime]):
        if reason == "account_locked":
            text = "Account temporarily locked. Please try again later."
        else:
            text = "Too many login attempts. Please try again later."
        super().__init__(text)
        self.reason = reason
        self.reset_time = reset_time


class InvalidCredentialError(AuthServiceError):
    status_code = 401
    message = "Invalid or expired magic link"


class NotAuthenticatedError(AuthServiceError):
    status_code = 401
    message = "Authentication required"


class PermissionDeniedError(AuthServiceError):
    status_code = 403
    message = "Insufficient permissions"


class NotFoundError(AuthServiceError):
    status_code = 404
    message = "Not found"


class NotifierError(AuthServiceError):
    """Outbound email failed. Recovered locally by the issuer."""

    status_code = 502
    message = "Email delivery failed"


class ConcurrentUpdateError(AuthServiceError):
    """
    An account changed between read and conditional write. Retried by
    retry_on_conflict, which raises PersistenceError once retries run out.
    """

    status_code = 409
    message = "Account was modified concurrently"


class PersistenceError(AuthServiceError):
    status_code = 500
    message = "Internal server error"


def _reset_time_text(reset_time: Optional[datetime]) -> Optional[str]:
    if reset_time is None:
        return None
    return reset_time.strftime("%Y-%m-%d %H:%M:%S UTC")


async def auth_error_handler(request: Request, exc: AuthServiceError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message} - {request.url.path}")
    else:
        logger.info(f"HTTP {exc.status_code}: {exc.message} - {request.url.path}")

    content = {"error": exc.message}
    if isinstance(exc, RateLimitedError):
        content["reason"] = exc.reason
        content["resetTime"] = exc.reset_time.isoformat() if exc.reset_time else None
        content["resetTimeText"] = _reset_time_text(exc.reset_time)
    return JSONResponse(status_code=exc.status_code, content=content)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Validation error: {exc.errors()} - {request.url.path}")
    return JSONResponse(status_code=400, content={"error": "Invalid request"})


async def database_exception_handler(request: Request, exc: PyMongoError):
    logger.error(f"Database error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error: {exc} - {request.url.path}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})
