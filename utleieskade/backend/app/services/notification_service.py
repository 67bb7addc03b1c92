# backend/app/services/notification_service.py
from __future__ import annotations

import logging
from typing import Iterable, Optional

from fastapi import HTTPException
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.clock import utcnow
from ..domain.statuses import ADMIN_TYPES, CaseStatus, UserStatus, UserType, values
from ..models import Case, Notification, User

log = logging.getLogger("utleieskade.notifications")

OPEN_CASE_STATUSES = (
    CaseStatus.open.value,
    CaseStatus.pending.value,
    CaseStatus.in_progress.value,
    CaseStatus.on_hold.value,
)


def notify(
    db: Session,
    *,
    user_id: str,
    title: str,
    message: str,
    notification_type: str = "system",
    case_id: Optional[str] = None,
) -> Notification:
    """Stages a notification; caller commits."""
    row = Notification(
        user_id=user_id,
        title=title,
        message=message,
        notification_type=notification_type,
        case_id=case_id,
        created_at=utcnow(),
    )
    db.add(row)
    return row


def list_for_user(db: Session, user_id: str, *, is_read: Optional[bool] = None, limit: int = 50) -> list[Notification]:
    stmt = select(Notification).where(Notification.user_id == user_id)
    if is_read is not None:
        stmt = stmt.where(Notification.is_read.is_(is_read))
    return list(db.scalars(stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)).all())


def unread_count(db: Session, user_id: str) -> int:
    return int(
        db.scalar(
            select(func.count()).select_from(Notification).where(
                Notification.user_id == user_id, Notification.is_read.is_(False)
            )
        )
        or 0
    )


def mark_read(db: Session, user_id: str, notification_id: int) -> Notification:
    row = db.scalar(select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id))
    if row is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    row.is_read = True
    db.commit()
    db.refresh(row)
    return row


def mark_all_read(db: Session, user_id: str) -> int:
    res = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return int(res.rowcount or 0)


def send_system(db: Session, *, user_id: str, title: str, message: str) -> Notification:
    if db.get(User, user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")
    row = notify(db, user_id=user_id, title=title, message=message)
    db.commit()
    db.refresh(row)
    return row


def send_mass(db: Session, *, title: str, message: str, user_types: Iterable[str]) -> int:
    types = [t for t in user_types if t]
    allowed = values(UserType)
    bad = [t for t in types if t not in allowed]
    if bad:
        raise HTTPException(status_code=400, detail=f"Invalid user types: {', '.join(bad)}")

    stmt = select(User.id).where(User.status == UserStatus.active.value)
    if types:
        stmt = stmt.where(User.user_type.in_(types))
    ids = list(db.scalars(stmt).all())
    for uid in ids:
        notify(db, user_id=uid, title=title, message=message)
    db.commit()
    log.info("mass notification sent to %s users", len(ids))
    return len(ids)


def _already_notified(db: Session, *, user_id: str, notification_type: str, case_id: Optional[str], message: str) -> bool:
    stmt = select(Notification.id).where(
        Notification.user_id == user_id,
        Notification.notification_type == notification_type,
    )
    if case_id:
        stmt = stmt.where(Notification.case_id == case_id)
    stmt = stmt.where(Notification.message == message)
    return db.scalar(stmt.limit(1)) is not None


def check_overdue_cases(db: Session) -> int:
    """Notifies tenant and inspector once per overdue case and deadline."""
    now = utcnow()
    cases = db.scalars(
        select(Case).where(Case.deadline.is_not(None), Case.deadline < now, Case.status.in_(OPEN_CASE_STATUSES))
    ).all()

    sent = 0
    for c in cases:
        text = f"Case {c.id} passed its deadline on {c.deadline:%Y-%m-%d %H:%M}."
        for uid in filter(None, (c.tenant_id, c.inspector_id)):
            if _already_notified(db, user_id=uid, notification_type="overdue", case_id=c.id, message=text):
                continue
            notify(db, user_id=uid, title="Case overdue", message=text, notification_type="overdue", case_id=c.id)
            sent += 1
    db.commit()
    log.info("overdue check: %s cases, %s notifications", len(cases), sent)
    return sent


def check_frequent_cancellations(db: Session, threshold: Optional[int] = None) -> list[str]:
    """Flags tenants whose cancelled case count reaches the threshold to every admin."""
    limit = int(threshold or settings.cancellation_alert_threshold)
    rows = db.execute(
        select(Case.tenant_id, func.count())
        .where(Case.status == CaseStatus.cancelled.value)
        .group_by(Case.tenant_id)
        .having(func.count() >= limit)
    ).all()
    admins = list(db.scalars(select(User.id).where(User.user_type.in_(ADMIN_TYPES))).all())

    flagged: list[str] = []
    for tenant_id, n in rows:
        flagged.append(tenant_id)
        text = f"Tenant {tenant_id} has cancelled {int(n)} cases."
        for admin_id in admins:
            if _already_notified(db, user_id=admin_id, notification_type="cancellations", case_id=None, message=text):
                continue
            notify(db, user_id=admin_id, title="Frequent cancellations", message=text, notification_type="cancellations")
    db.commit()
    return flagged
