# backend/app/middleware/request_id.py
from __future__ import annotations

import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable, Iterator, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def get_request_id() -> str | None:
    return request_id_ctx.get()


def new_request_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex}"


def accept_request_id(raw: Optional[str]) -> Optional[str]:
    """Inbound ids are echoed into logs and headers, so only short plain tokens are kept."""
    v = (raw or "").strip()
    return v if _SAFE_ID.match(v) else None


@contextmanager
def bind_request_id(rid: Optional[str] = None) -> Iterator[str]:
    """
    Binds an id for log correlation outside the HTTP middleware: websocket
    sessions and celery tasks.
    """
    rid = rid or new_request_id()
    token = request_id_ctx.set(rid)
    try:
        yield rid
    finally:
        request_id_ctx.reset(token)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tags each HTTP request with an id, reusing a well-formed inbound X-Request-ID."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = accept_request_id(request.headers.get(REQUEST_ID_HEADER)) or new_request_id()
        request.state.request_id = rid
        with bind_request_id(rid):
            resp = await call_next(request)
        resp.headers[REQUEST_ID_HEADER] = rid
        return resp
