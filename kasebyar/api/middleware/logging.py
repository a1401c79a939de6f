"""
Request logging middleware.

Binds a short request id and the acting cashier into structlog's context
so every event logged while serving the request carries them.
"""

import time
import uuid
from collections.abc import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from kasebyar.config import get_logger

logger = get_logger(__name__)

CASHIER_HEADER = "X-Cashier"
QUIET_PATHS = ("/api/health",)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs request completion and timing; health checks log at debug."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        request_id = uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            cashier=request.headers.get(CASHIER_HEADER),
        )

        log = logger.debug if request.url.path.startswith(QUIET_PATHS) else logger.info
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        log(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round(duration_ms, 2),
        )
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response
