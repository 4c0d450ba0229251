import logging
from typing import Dict, Any, Optional
from fastapi import Request
from fastapi.responses import JSONResponse
from bookify.core.logging import log_request_context

logger = logging.getLogger(__name__)


class APIError(Exception):
    """
    Error with an HTTP status, rendered as {error, message, details, timestamp}.
    Subclasses only pick the status and a fallback message.
    """

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(APIError):
    status_code = 400
    default_message = "Validation failed"


class AuthenticationError(APIError):
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(APIError):
    status_code = 403
    default_message = "Access denied"


class NotFoundError(APIError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(APIError):
    """Name, email or one-per-owner uniqueness clash"""
    status_code = 409
    default_message = "Resource already exists"


class InventoryError(ConflictError):
    """Quantity above what is left, or above the per-user limit"""
    default_message = "Not enough items available"


class DatabaseError(APIError):
    default_message = "Database operation failed"


def _error_context(request: Request, exc: Exception, status_code: int) -> Dict[str, Any]:
    session_context = getattr(request.state, 'session_context', None)
    context = log_request_context(getattr(session_context, 'user_id', None))
    context.update(
        error_type=type(exc).__name__,
        status_code=status_code,
        path=request.url.path,
        method=request.method
    )
    return context


async def api_exception_handler(request: Request, exc: APIError):
    context = _error_context(request, exc, exc.status_code)
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(level, f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}",
               extra={"context": context})

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "message": exc.message,
            "details": exc.details,
            "timestamp": context["timestamp"]
        }
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Anything unhandled becomes a bare 500; the traceback stays in the logs"""
    context = _error_context(request, exc, 500)
    logger.error(f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}: {exc}",
                 extra={"context": context}, exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "message": APIError.default_message,
            "timestamp": context["timestamp"]
        }
    )
