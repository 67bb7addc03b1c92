# backend/app/workers/celery_app.py
from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from ..config import settings

BROKER = settings.celery_broker_url or "redis://localhost:6379/0"
BACKEND = settings.celery_result_backend or "redis://localhost:6379/1"

celery_app = Celery(
    "utleieskade",
    broker=BROKER,
    backend=BACKEND,
    include=["app.workers.maintenance_tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    timezone="UTC",
)

celery_app.conf.task_routes = {
    "app.workers.maintenance_tasks.*": {"queue": "maintenance"},
}

celery_app.conf.beat_schedule = {
    "check-overdue-cases": {
        "task": "app.workers.maintenance_tasks.check_overdue",
        "schedule": crontab(minute=0),
    },
    "check-frequent-cancellations": {
        "task": "app.workers.maintenance_tasks.check_cancellations",
        "schedule": crontab(minute=15, hour="*/6"),
    },
    "purge-expired-otps": {
        "task": "app.workers.maintenance_tasks.purge_otps",
        "schedule": crontab(minute="*/30"),
    },
    "purge-expired-data": {
        "task": "app.workers.maintenance_tasks.purge_retention",
        "schedule": crontab(minute=30, hour=3),
    },
}
