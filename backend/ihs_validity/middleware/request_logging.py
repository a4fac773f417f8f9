"""
Request/response logging middleware.
"""
import logging
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ihs_validity.core.logging_config import request_id_context

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request with its outcome and latency.

    The ``X-Request-ID`` header is propagated when the client sends one and
    generated otherwise. It is stored in ``request_id_context`` so every log
    line written while handling the request carries it, and echoed back on
    the response. Query strings are not logged; they can carry demographic
    filter values.
    """

    # Probes would otherwise dominate the log
    QUIET_PATHS = ("/health", "/ping")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_context.set(request_id)

        start_time = time.time()
        method = request.method
        path = str(request.url.path)
        client_host = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
        finally:
            request_id_context.reset(token)

        duration_ms = round((time.time() - start_time) * 1000, 2)
        status_code = response.status_code
        response.headers["X-Request-ID"] = request_id

        extra_fields = {
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration_ms": duration_ms,
            "client_host": client_host,
        }

        if status_code >= 500:
            logger.error("Server error response", extra=extra_fields)
        elif status_code >= 400:
            logger.warning("Client error response", extra=extra_fields)
        elif path in self.QUIET_PATHS:
            logger.debug("Request completed", extra=extra_fields)
        else:
            logger.info("Request completed", extra=extra_fields)

        return response
