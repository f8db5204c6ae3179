# backend/app/middleware/structured_logging.py
from __future__ import annotations

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..config import settings

log = logging.getLogger("facility_inspections.request")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    One access-log line per request. Fields ride on `extra=` and are rendered
    by JsonFormatter: request_id, user_email, method, path, status_code,
    latency_ms.

    Must be added before RequestIdMiddleware so it runs inside it and the
    request id ContextVar is already set.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            log.info(
                "%s %s -> %d",
                request.method,
                request.url.path,
                status_code,
                extra={
                    "request_id": getattr(request.state, "request_id", None),
                    "user_email": request.headers.get(settings.dev_header_user_email),
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "latency_ms": int((time.perf_counter() - started) * 1000),
                },
            )
