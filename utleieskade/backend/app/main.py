# backend/app/main.py
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .db import start_db_connect_loop
from .logging_config import configure_logging

from .middleware.errors import install_error_handlers
from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .realtime import router as realtime_router

from .routers.health import router as health_router
from .routers.users import router as users_router
from .routers.otp import router as otp_router

from .routers.cases import router as cases_router
from .routers.inspectors import router as inspectors_router
from .routers.tenants import router as tenants_router
from .routers.admins import router as admins_router

from .routers.payments import router as payments_router
from .routers.refunds import router as refunds_router

from .routers.chats import router as chats_router
from .routers.files import router as files_router
from .routers.expertises import router as expertises_router
from .routers.notifications import router as notifications_router
from .routers.settings import router as settings_router
from .routers.action_logs import router as action_logs_router


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Utleieskade API", version=settings.app_version)
    origins = _cors_origins()
    prefix = settings.api_prefix

    # Request-ID outermost so every log line and error carries it
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    install_error_handlers(app, cors_origins=origins)

    # Core
    app.include_router(health_router, prefix=prefix)
    app.include_router(users_router, prefix=prefix)
    app.include_router(otp_router, prefix=prefix)

    # Case pipeline
    app.include_router(cases_router, prefix=prefix)
    app.include_router(inspectors_router, prefix=prefix)
    app.include_router(tenants_router, prefix=prefix)
    app.include_router(admins_router, prefix=prefix)

    # Money
    app.include_router(payments_router, prefix=prefix)
    app.include_router(refunds_router, prefix=prefix)

    # Messaging, files, platform
    app.include_router(chats_router, prefix=prefix)
    app.include_router(files_router, prefix=prefix)
    app.include_router(expertises_router, prefix=prefix)
    app.include_router(notifications_router, prefix=prefix)
    app.include_router(settings_router, prefix=prefix)
    app.include_router(action_logs_router, prefix=prefix)

    app.include_router(realtime_router)

    @app.on_event("startup")
    def _connect_db() -> None:
        if settings.app_env != "test":
            start_db_connect_loop()

    return app


app = create_app()
