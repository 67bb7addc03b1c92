# backend/app/middleware/errors.py
from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import settings
from ..responses import error_body

log = logging.getLogger("utleieskade.errors")


def _detail_message(detail) -> str:
    if isinstance(detail, str):
        return detail
    if isinstance(detail, dict) and detail.get("message"):
        return str(detail["message"])
    if isinstance(detail, list):
        return ", ".join(str(x.get("msg", x)) if isinstance(x, dict) else str(x) for x in detail)
    return str(detail) if detail else "Internal server error"


def _validation_message(exc: RequestValidationError) -> str:
    parts: list[str] = []
    for err in exc.errors():
        loc = [str(x) for x in err.get("loc", ()) if x not in ("body", "query", "path")]
        msg = str(err.get("msg") or "invalid value")
        parts.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return ", ".join(parts) or "Validation error"


def cors_headers_for(request: Request, allowed: list[str]) -> dict[str, str]:
    origin = request.headers.get("origin")
    if not origin:
        return {}
    if "*" in allowed or origin in allowed:
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
            "Vary": "Origin",
        }
    return {}


def install_error_handlers(app: FastAPI, *, cors_origins: list[str]) -> None:
    """
    Converts every failure into the {status: "error", message} envelope.

    The catch-all handler runs outside CORSMiddleware, so it re-applies the
    allow-listed CORS headers itself.
    """

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            error_body(_detail_message(exc.detail)),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(HTTPException)
    async def _fastapi_http_exc(request: Request, exc: HTTPException):
        return JSONResponse(
            error_body(_detail_message(exc.detail)),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(request: Request, exc: RequestValidationError):
        return JSONResponse(error_body(_validation_message(exc)), status_code=400)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        log.exception("unhandled error on %s %s", request.method, request.url.path)
        body = error_body("Internal server error")
        if settings.is_dev:
            body["message"] = str(exc) or exc.__class__.__name__
            body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return JSONResponse(body, status_code=500, headers=cors_headers_for(request, cors_origins))
