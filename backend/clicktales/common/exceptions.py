"""
Domain error taxonomy and its mapping onto HTTP responses.

Services raise these; the handlers registered here turn them into the
``{success: false, message, error}`` envelope. Anything else becomes a 500
whose detail is only exposed in debug mode.
"""

from typing import Dict, List, Optional
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map to a client-visible status"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class TokenExpiredError(UnauthorizedError):
    default_message = "Token expired"


class TokenInvalidError(UnauthorizedError):
    default_message = "Invalid token"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class RateLimitError(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests, please try again later"


class InternalError(AppError):
    pass


class NotificationDeliveryError(InternalError):
    """Raised by a notification sender when a message could not be delivered"""

    default_message = "Failed to send verification email"

    def __init__(self, recipient: str, reason: str):
        self.recipient = recipient
        self.reason = reason
        super().__init__()


def _error_body(message: str, error: Optional[str] = None) -> dict:
    return {"success": False, "message": message, "error": error or message}


def _collect_validation_errors(exc: RequestValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for item in exc.errors():
        loc = [str(part) for part in item.get("loc", ()) if part != "body"]
        field = ".".join(loc) or "body"
        errors.setdefault(field, []).append(item.get("msg", "Invalid value"))
    return errors


def register_exception_handlers(app: FastAPI, debug: bool = False):
    """Install the domain → HTTP mapping on an application"""

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        headers = None
        if isinstance(exc, UnauthorizedError):
            headers = {"WWW-Authenticate": "Bearer"}
        if isinstance(exc, InternalError):
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        body = _error_body("Validation failed")
        body["errors"] = _collect_validation_errors(exc)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error on {request.method} {request.url.path}: {exc}",
            exc_info=True,
        )
        message = "Internal Server Error"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(message, str(exc) if debug else message),
        )
