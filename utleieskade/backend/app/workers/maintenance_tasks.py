# backend/app/workers/maintenance_tasks.py
from __future__ import annotations

import logging
from typing import Callable, TypeVar

from sqlalchemy.orm import Session

from ..db import SessionLocal
from ..middleware.request_id import bind_request_id, new_request_id
from ..services.notification_service import check_frequent_cancellations, check_overdue_cases
from ..services.otp_service import purge_expired
from ..services.settings_service import purge_expired_data
from .celery_app import celery_app

log = logging.getLogger("utleieskade.workers")

T = TypeVar("T")


def _with_session(fn: Callable[[Session], T]) -> T:
    with bind_request_id(new_request_id("task-")):
        db = SessionLocal()
        try:
            return fn(db)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


@celery_app.task(name="app.workers.maintenance_tasks.check_overdue")
def check_overdue() -> dict:
    sent = _with_session(check_overdue_cases)
    return {"ok": True, "notificationsSent": sent}


@celery_app.task(name="app.workers.maintenance_tasks.check_cancellations")
def check_cancellations(threshold: int | None = None) -> dict:
    flagged = _with_session(lambda db: check_frequent_cancellations(db, threshold))
    if flagged:
        log.info("tenants flagged for cancellations: %s", flagged)
    return {"ok": True, "flaggedTenants": flagged}


@celery_app.task(name="app.workers.maintenance_tasks.purge_otps")
def purge_otps() -> dict:
    return {"ok": True, "deleted": _with_session(purge_expired)}


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    name="app.workers.maintenance_tasks.purge_retention",
)
def purge_retention(self) -> dict:
    """Retention purge; retried since it can lose to long-running writers on Postgres."""
    try:
        return {"ok": True, **_with_session(purge_expired_data)}
    except Exception as e:
        log.warning("retention purge failed: %s", e)
        raise self.retry(exc=e)
