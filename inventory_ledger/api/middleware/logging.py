"""
Request logging.

Each request runs with ``request_id`` bound in structlog's context
variables, so store and ledger events logged while serving it carry the
same id as the request_started/request_completed pair.
"""

import time
import uuid
from collections.abc import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from inventory_ledger.config import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request with its timing and echoes the request id."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        # A client retrying a completion can send its own id to correlate attempts
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        started = time.perf_counter()

        with structlog.contextvars.bound_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        ):
            logger.info(
                "request_started",
                client=request.client.host if request.client else "unknown",
            )
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error("request_failed", error=str(e), duration_ms=_elapsed_ms(started))
                raise

            duration_ms = _elapsed_ms(started)
            logger.info("request_completed", status=response.status_code, duration_ms=duration_ms)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response
