# backend/app/middleware/structured_logging.py
from __future__ import annotations

import json
import logging
import time
from typing import Callable, Optional

import jwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("utleieskade.request")


def _json_log(payload: dict) -> None:
    # One JSON line per request.
    try:
        log.info(json.dumps(payload, default=str))
    except Exception:
        log.info(str(payload))


def _peek_user(request: Request) -> tuple[Optional[str], Optional[str]]:
    """
    Reads the bearer token claims WITHOUT verifying the signature.
    Only used to tag the access log line; auth is enforced in dependencies.
    """
    auth = request.headers.get("Authorization") or ""
    if not auth.lower().startswith("bearer "):
        return None, None
    try:
        claims = jwt.decode(auth.split(" ", 1)[1].strip(), options={"verify_signature": False})
    except jwt.PyJWTError:
        return None, None
    return claims.get("id"), claims.get("userType")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Emits one structured log line per request with:
      request_id, user_id, user_type, method, path, status_code, latency_ms
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.time()
        user_id, user_type = _peek_user(request)

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            latency_ms = int((time.time() - t0) * 1000)

            _json_log(
                {
                    "event": "http_request",
                    "request_id": getattr(request.state, "request_id", None),
                    "method": request.method,
                    "path": request.url.path,
                    "query": str(request.url.query) if request.url.query else "",
                    "status_code": status_code,
                    "latency_ms": latency_ms,
                    "user_id": user_id,
                    "user_type": user_type,
                }
            )
