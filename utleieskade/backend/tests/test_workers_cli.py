# backend/tests/test_workers_cli.py
from __future__ import annotations

from datetime import timedelta

from sqlalchemy import select

from app.cli.seed import DEFAULT_EXPERTISES, init_platform
from app.domain.clock import utcnow
from app.domain.ids import generate_unique_id
from app.models import Expertise, Otp
from app.workers.celery_app import celery_app
from app.workers.maintenance_tasks import check_overdue, purge_otps, purge_retention
from conftest import make_account


def test_beat_schedule_points_at_registered_tasks():
    for entry in celery_app.conf.beat_schedule.values():
        assert entry["task"] in celery_app.tasks


def test_purge_otps_removes_only_expired(db):
    acct = make_account("tenant")
    now = utcnow()
    db.add_all(
        [
            Otp(id=generate_unique_id("OTP"), user_id=acct.id, code_hash="x", expires_at=now - timedelta(minutes=1),
                created_at=now, updated_at=now),
            Otp(id=generate_unique_id("OTP"), user_id=acct.id, code_hash="y", expires_at=now + timedelta(minutes=9),
                created_at=now, updated_at=now),
        ]
    )
    db.commit()

    out = purge_otps()
    assert out["ok"] is True
    assert out["deleted"] >= 1

    db.expire_all()
    left = db.scalars(select(Otp.code_hash).where(Otp.user_id == acct.id)).all()
    assert left == ["y"]


def test_maintenance_tasks_run_inline():
    assert check_overdue()["ok"] is True
    out = purge_retention()
    assert set(out) == {"ok", "notifications", "actionLogs"}


def test_init_platform_seeds_expertises_once(db):
    first = init_platform()
    second = init_platform()
    assert first.settings_id == "PLATFORM_SETTINGS"
    assert second.expertises_added == 0

    areas = set(db.scalars(select(Expertise.area)).all())
    assert {area for area, _ in DEFAULT_EXPERTISES} <= areas
