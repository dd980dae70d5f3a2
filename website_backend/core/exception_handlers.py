"""Global exception handlers.

Whatever escapes a route is answered with the same fixed plain-text body used
by the submission endpoint, so failures never leak internals to clients:
- DeliveryError → 500 (operator-side condition)
- any other AppError → 400
- unexpected Exception → 500 (safety net)
The specific cause is written to the log only.
"""

import logging

from fastapi import Request
from fastapi.responses import PlainTextResponse

from website_backend.core.client_identity import client_ip
from website_backend.core.errors import AppError, DeliveryError
from website_backend.core.logging import get_request_id

logger = logging.getLogger(__name__)

GENERIC_ERROR_BODY = "invalid request"


def generic_error_response(status_code: int, headers: dict[str, str] | None = None) -> PlainTextResponse:
    """Build the fixed, cause-free error response."""
    return PlainTextResponse(GENERIC_ERROR_BODY, status_code=status_code, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> PlainTextResponse:
    """Handle domain errors that were not turned into a result by a route.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        Generic plain-text response with 400 or 500 status.
    """
    status_code = 500 if isinstance(exc, DeliveryError) else 400

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "client_ip": client_ip(request),
            "path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    return generic_error_response(status_code)


async def general_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
    """Fallback handler for unexpected errors.

    Logs the exception type and message; the client only sees the generic body.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return generic_error_response(500)


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
