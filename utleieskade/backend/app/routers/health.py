# backend/app/routers/health.py
from __future__ import annotations

from fastapi import APIRouter

from ..config import settings
from ..db import db_ready, ping_db

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    ok = db_ready.is_set() or ping_db()
    if ok:
        db_ready.set()
    return {
        "status": "ok",
        "env": settings.app_env,
        "version": settings.app_version,
        "database": "connected" if ok else "unavailable",
    }


@router.get("/")
def root():
    return {"status": "ok", "message": "Utleieskade API is running"}
