# backend/app/routers/settings.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin
from ..db import get_db
from ..domain.action_log import log_admin_action
from ..responses import envelope
from ..schemas import DataDeletionIn, PlatformSettingsPatch
from ..serializers import action_log_out, settings_out, user_out
from ..services import settings_service

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/platform")
def get_platform(p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return envelope("Platform settings fetched successfully", settings_out(settings_service.get_platform_settings(db)))


@router.patch("/platform")
def patch_platform(payload: PlatformSettingsPatch, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    row, changes = settings_service.update_platform_settings(db, payload)
    log_admin_action(
        db,
        p.user_id,
        "admin_settings_updated",
        f"Updated platform settings: {', '.join(sorted(changes))}",
        metadata={k: str(v) for k, v in changes.items()},
    )
    return envelope("Platform settings updated successfully", settings_out(row))


@router.post("/data-deletion")
def data_deletion(payload: DataDeletionIn, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    user = settings_service.anonymize_user(db, user_id=payload.user_id, actor_id=p.user_id)
    log_admin_action(db, p.user_id, "admin_data_deleted", f"Anonymised personal data of {user.id}", metadata={"userId": user.id})
    return envelope("User data deleted successfully", user_out(user))


@router.get("/data-logs")
def data_logs(
    limit: int = Query(default=100, ge=1, le=500),
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rows = settings_service.list_data_logs(db, limit=limit)
    return envelope("Data logs fetched successfully", [action_log_out(r) for r in rows])
