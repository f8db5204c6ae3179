# backend/app/middleware/request_id.py
from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
MAX_INCOMING_LEN = 128

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def get_request_id() -> str | None:
    return request_id_ctx.get()


def _incoming_id(request: Request) -> str | None:
    # header lookup is case-insensitive
    rid = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if not rid or len(rid) > MAX_INCOMING_LEN:
        return None
    return rid


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Reuses a caller-supplied X-Request-ID or mints a uuid4, exposes it to log
    records through a ContextVar and echoes it on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = _incoming_id(request) or str(uuid.uuid4())
        request.state.request_id = rid
        token = request_id_ctx.set(rid)
        try:
            resp = await call_next(request)
            resp.headers[REQUEST_ID_HEADER] = rid
            return resp
        finally:
            request_id_ctx.reset(token)
