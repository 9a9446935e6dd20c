"""
Error types raised by the service layer and the handlers that render them.

Every error carries a machine-readable ``code`` next to the human message so
clients can branch on it (e.g. ``EMAIL_EXISTS`` vs ``INSUFFICIENT_STOCK``).
"""
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response format."""

    detail: str
    code: str
    details: Dict[str, Any] = {}


class StorefrontError(Exception):
    """Base exception for the storefront services."""

    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(detail=self.message, code=self.code, details=self.details)


class ValidationFailed(StorefrontError):
    status_code = 400
    default_code = "VALIDATION_ERROR"


class AuthenticationFailed(StorefrontError):
    status_code = 401
    default_code = "AUTHENTICATION_ERROR"

    def __init__(self, message: str = "Authentication required", code: Optional[str] = None, **kwargs):
        super().__init__(message, code=code, **kwargs)


class PermissionDenied(StorefrontError):
    status_code = 403
    default_code = "FORBIDDEN"

    def __init__(self, message: str = "Insufficient permissions", code: Optional[str] = None, **kwargs):
        super().__init__(message, code=code, **kwargs)


class NotFoundError(StorefrontError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(StorefrontError):
    status_code = 409
    default_code = "CONFLICT"


class RateLimitExceeded(StorefrontError):
    status_code = 429
    default_code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, message: str = "Too many requests, please try again later", retry_after: int = 60, **kwargs):
        self.retry_after = retry_after
        details = kwargs.pop("details", None) or {}
        details.setdefault("retry_after", retry_after)
        super().__init__(message, details=details, **kwargs)


class PaymentError(StorefrontError):
    """Gateway or verification failure. 400 for bad input, 502 when the gateway fails."""

    status_code = 400
    default_code = "PAYMENT_ERROR"


class ConfigurationError(StorefrontError):
    """A feature was used without its required settings."""

    status_code = 503
    default_code = "CONFIGURATION_ERROR"


# =========================
# HANDLERS
# =========================
async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} in {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} in {request.method} {request.url.path}: {exc.message}")

    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(exc.retry_after)}

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(),
        headers=headers,
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all for unhandled exceptions.

    Logs the full traceback under a generated error id and returns that id
    so a client can quote it when reporting the problem.
    """
    error_id = uuid.uuid4().hex[:12]
    logger.error(
        f"Unhandled exception [{error_id}] in {request.method} {request.url.path}: {exc}",
        exc_info=True,
        extra={
            "error_id": error_id,
            "client": request.client.host if request.client else "unknown",
            "error_type": type(exc).__name__,
        },
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "code": "INTERNAL_ERROR",
            "error_id": error_id,
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the storefront error handlers on ``app``."""
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("Exception handlers registered")
