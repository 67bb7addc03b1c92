# backend/app/services/settings_service.py
from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any

from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..domain.clock import utcnow
from ..domain.statuses import ADMIN_TYPES, UserStatus
from ..models import ActionLog, BankDetails, Notification, Otp, PlatformSettings
from ..schemas import PlatformSettingsPatch
from .auth_service import PASSWORD_RESET_MARKER
from .ownership import must_get_user

log = logging.getLogger("utleieskade.settings")

SETTINGS_ID = "PLATFORM_SETTINGS"


def get_platform_settings(db: Session) -> PlatformSettings:
    """Singleton row, created with defaults on first read."""
    row = db.get(PlatformSettings, SETTINGS_ID)
    if row is not None:
        return row
    row = PlatformSettings(id=SETTINGS_ID)
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # another request created it first
        db.rollback()
        return db.get(PlatformSettings, SETTINGS_ID)
    db.refresh(row)
    log.info("platform settings initialised with defaults")
    return row


def update_platform_settings(db: Session, payload: PlatformSettingsPatch) -> tuple[PlatformSettings, dict[str, Any]]:
    row = get_platform_settings(db)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No settings provided to update.")
    for k, v in changes.items():
        setattr(row, k, v)
    row.updated_at = utcnow()
    db.commit()
    db.refresh(row)
    return row, changes


def case_price(s: PlatformSettings, urgency: str) -> Decimal:
    price = Decimal(s.base_price or 0)
    if urgency == "high":
        price += Decimal(s.haste_case_fee or 0)
    return price.quantize(Decimal("0.01"))


def deadline_days(s: PlatformSettings, urgency: str) -> int:
    return int(s.haste_case_deadline_days if urgency == "high" else s.normal_case_deadline_days)


def anonymize_user(db: Session, *, user_id: str, actor_id: str):
    """GDPR erasure: personal fields are blanked, the row and its history stay."""
    user = must_get_user(db, user_id=user_id, detail="User not found")
    if user.id == actor_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own data.")
    if user.user_type in ADMIN_TYPES:
        raise HTTPException(status_code=403, detail="Admin accounts cannot be anonymised.")

    return scrub_personal_data(db, user)


def scrub_personal_data(db: Session, user):
    """Blanks personal fields and deactivates; cases, payments and audit rows stay."""
    user.first_name = "Deleted"
    user.last_name = "User"
    user.email = f"deleted-{user.id.lower()}@anonymized.invalid"
    user.password_hash = PASSWORD_RESET_MARKER
    for field in ("phone", "city", "postcode", "address", "country", "gender", "profile_pic"):
        setattr(user, field, None)
    user.status = UserStatus.inactive.value
    user.is_verified = False

    db.execute(delete(BankDetails).where(BankDetails.user_id == user.id))
    db.execute(delete(Otp).where(Otp.user_id == user.id))
    db.commit()
    db.refresh(user)
    log.info("user data anonymised", extra={"user_id": user.id})
    return user


def purge_expired_data(db: Session) -> dict[str, int]:
    """Drops read notifications and audit rows older than the retention window."""
    s = get_platform_settings(db)
    if not s.gdpr_enabled:
        return {"notifications": 0, "actionLogs": 0}

    cutoff = utcnow() - timedelta(days=int(s.data_retention_days))
    n = db.execute(delete(Notification).where(Notification.is_read.is_(True), Notification.created_at < cutoff))
    a = db.execute(delete(ActionLog).where(ActionLog.created_at < cutoff))
    db.commit()
    out = {"notifications": int(n.rowcount or 0), "actionLogs": int(a.rowcount or 0)}
    log.info("retention purge done: %s", out)
    return out


def list_data_logs(db: Session, *, limit: int = 100) -> list[ActionLog]:
    return list(db.scalars(select(ActionLog).order_by(ActionLog.created_at.desc(), ActionLog.id.desc()).limit(limit)).all())
