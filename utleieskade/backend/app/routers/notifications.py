# backend/app/routers/notifications.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_admin
from ..db import get_db
from ..responses import envelope
from ..schemas import MassNotificationIn, SystemNotificationIn
from ..serializers import notification_out
from ..services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
def list_notifications(
    is_read: Optional[bool] = Query(default=None, alias="isRead"),
    limit: int = Query(default=50, ge=1, le=200),
    p: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    rows = notification_service.list_for_user(db, p.user_id, is_read=is_read, limit=limit)
    return envelope("Notifications fetched successfully", [notification_out(n) for n in rows])


@router.get("/unread-count")
def unread_count(p: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    return envelope("Unread count fetched successfully", {"count": notification_service.unread_count(db, p.user_id)})


@router.patch("/mark-all-read")
def mark_all_read(p: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    n = notification_service.mark_all_read(db, p.user_id)
    return envelope("All notifications marked as read", {"updated": n})


@router.patch("/{notification_id}/read")
def mark_read(notification_id: int, p: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    row = notification_service.mark_read(db, p.user_id, notification_id)
    return envelope("Notification marked as read", notification_out(row))


@router.post("/system", status_code=201)
def system(payload: SystemNotificationIn, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    row = notification_service.send_system(db, user_id=payload.user_id, title=payload.title, message=payload.message)
    return envelope("System notification sent", notification_out(row))


@router.post("/mass", status_code=201)
def mass(payload: MassNotificationIn, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    n = notification_service.send_mass(db, title=payload.title, message=payload.message, user_types=payload.user_types)
    return envelope("Mass notification sent", {"recipients": n})


@router.post("/check-overdue")
def check_overdue(p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    n = notification_service.check_overdue_cases(db)
    return envelope("Overdue check completed", {"notificationsSent": n})


@router.post("/check-cancellations")
def check_cancellations(
    threshold: Optional[int] = Query(default=None, ge=1),
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    flagged = notification_service.check_frequent_cancellations(db, threshold)
    return envelope("Cancellation check completed", {"flaggedTenants": flagged})
