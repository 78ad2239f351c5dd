# api/app/middleware/request_logging.py
"""
Request timing log. Caller auth lives in dependencies.py via Depends().
"""
from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        t0 = time.monotonic()
        response = await call_next(request)
        elapsed_ms = (time.monotonic() - t0) * 1000
        response.headers["X-Response-Time-Ms"] = f"{elapsed_ms:.0f}"

        # job polling is chatty; keep it at debug
        level = logging.DEBUG if request.method == "GET" and request.url.path.startswith("/v1/jobs/") else logging.INFO
        logger.log(
            level,
            "%s %s -> %d (%.0fms)",
            request.method, request.url.path, response.status_code, elapsed_ms,
        )
        return response
