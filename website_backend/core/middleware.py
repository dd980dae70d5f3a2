"""HTTP middleware binding request context for logging.

Each request is tagged with a correlation id (taken from the configured
header or a fresh UUID4) and the client identity used by the rate limiter.
Both are bound to the logging context for the lifetime of the request, so
static file hits and framework errors log the same ``client_ip`` that the
submission pipeline records for rejections.

Usage:
    app.middleware("http")(build_request_context_middleware(cfg.log))
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response

from website_backend.core.client_identity import client_ip
from website_backend.core.config import LogSettings
from website_backend.core.logging import bind_request_context, clear_request_context

logger = logging.getLogger(__name__)

DURATION_HEADER = "X-Request-Duration-ms"

CallNext = Callable[[Request], Awaitable[Response]]


def build_request_context_middleware(log_settings: LogSettings):
    """Create the request context middleware for one application.

    Args:
        log_settings: Settings of the app being built; ``request_id_header``
            names the inbound and echoed correlation header.

    Returns:
        An ``http`` middleware function for ``app.middleware("http")``.
    """
    header_name = log_settings.request_id_header

    async def request_context_middleware(request: Request, call_next: CallNext) -> Response:
        request_id = request.headers.get(header_name) or str(uuid.uuid4())
        bind_request_context(request_id, client_ip(request))
        start = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.info(
                "http.request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round(elapsed_ms, 2),
                },
            )
        finally:
            clear_request_context()

        response.headers[header_name] = request_id
        response.headers.setdefault(DURATION_HEADER, f"{elapsed_ms:.2f}")
        return response

    return request_context_middleware
