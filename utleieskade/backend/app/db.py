# backend/app/db.py
from __future__ import annotations

import logging
import threading
import time

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from .config import settings

log = logging.getLogger("utleieskade.db")


class Base(DeclarativeBase):
    pass


def _engine_kwargs(url: str) -> dict:
    kwargs: dict = {"pool_pre_ping": True, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_size"] = int(settings.db_pool_size)
    return kwargs


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)

db_ready = threading.Event()


def get_db():
    """
    IMPORTANT (Postgres):
    If any SQL statement fails, the transaction is aborted and the session
    cannot run further statements until a rollback happens.

    This dependency guarantees rollback on exceptions so errors don't cascade
    into "InFailedSqlTransaction" on later queries in the same request.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        try:
            db.rollback()
        except Exception:
            log.warning("rollback failed", exc_info=True)
        raise
    finally:
        db.close()


def ping_db() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        log.warning("database not reachable: %s", e)
        return False


def connect_with_retry(stop: threading.Event | None = None) -> bool:
    """
    Blocks until the database answers or max attempts are exhausted.
    Meant to run off the request path; the HTTP listener does not wait for it.
    """
    attempts = 0
    limit = int(settings.db_connect_max_attempts)
    while stop is None or not stop.is_set():
        attempts += 1
        if ping_db():
            db_ready.set()
            log.info("database connected after %s attempt(s)", attempts)
            return True
        if limit and attempts >= limit:
            log.error("database still unreachable after %s attempts", attempts)
            return False
        time.sleep(float(settings.db_connect_retry_seconds))
    return False


def start_db_connect_loop() -> threading.Thread:
    t = threading.Thread(target=connect_with_retry, name="db-connect", daemon=True)
    t.start()
    return t
