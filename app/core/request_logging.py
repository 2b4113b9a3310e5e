"""
Request logging middleware - one structured entry per request
"""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import time
import uuid
import structlog

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with a short id and log method, path, status and duration"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start_time = time.perf_counter()

        logger.info(f"Request started: {request.method} {request.url.path}")
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            logger.exception(
                f"Request failed: {request.method} {request.url.path}",
                duration_ms=duration_ms,
            )
            raise
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        logger.info(
            f"Request completed: {request.method} {request.url.path}",
            status_code=response.status_code,
            duration_ms=duration_ms,
            request_id=request_id,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
