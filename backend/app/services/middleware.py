"""Request timing and tracing middleware for the quoter API."""
import re
import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("quoter-api.middleware")

SKIP_LOG_PATHS = {"/health"}

_QUOTATION_PATH = re.compile(r"^/api/quotations/([^/]+)")


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that:
    - Assigns a unique X-Request-ID (uuid4) to every request/response.
    - Measures end-to-end request duration in milliseconds.
    - Adds X-Process-Time header to every response.
    - Emits a structured log line for every request (except /health),
      tagged with the quotation id when the path names one.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = str(uuid.uuid4())
        start_time = time.perf_counter()

        request.state.request_id = request_id

        response: Response = await call_next(request)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(duration_ms)

        path = request.url.path
        if path not in SKIP_LOG_PATHS:
            extra = {
                "http_method": request.method,
                "http_path": path,
                "http_status": response.status_code,
                "request_id": request_id,
                "duration_ms": duration_ms,
            }
            match = _QUOTATION_PATH.match(path)
            if match:
                extra["quotation_id"] = match.group(1)
            logger.info("request completed", extra=extra)

        return response
