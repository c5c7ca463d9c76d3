"""
Request logging middleware.

Logs one line per request with method, path, status and duration, and
tags the response with an X-Request-ID (taken from the request when the
caller sent one). Bodies are never logged: login requests carry passwords.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("bookkeeping.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        start = time.perf_counter()

        response = await call_next(request)

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Request-ID"] = request_id

        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }
        if response.status_code >= 500:
            logger.error("%s %s -> %s", request.method, request.url.path, response.status_code, extra=log_data)
        elif response.status_code >= 400:
            logger.warning("%s %s -> %s", request.method, request.url.path, response.status_code, extra=log_data)
        else:
            logger.info("%s %s -> %s", request.method, request.url.path, response.status_code, extra=log_data)

        return response
