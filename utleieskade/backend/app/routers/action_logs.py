# backend/app/routers/action_logs.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin
from ..db import get_db
from ..domain.pagination import page_meta, page_params
from ..responses import envelope
from ..serializers import action_log_out
from ..services.action_log_service import action_types, list_logs

router = APIRouter(prefix="/action-logs", tags=["action-logs"])


@router.get("")
def get_logs(
    page: int = Query(default=1),
    limit: int = Query(default=20),
    action_type: Optional[str] = Query(default=None, alias="actionType"),
    inspector_id: Optional[str] = Query(default=None, alias="inspectorId"),
    admin_id: Optional[str] = Query(default=None, alias="adminId"),
    case_id: Optional[str] = Query(default=None, alias="caseId"),
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    search: Optional[str] = Query(default=None),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    params = page_params(page, limit)
    rows, total = list_logs(
        db,
        params,
        action_type=action_type,
        inspector_id=inspector_id,
        admin_id=admin_id,
        case_id=case_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return envelope(
        "Action logs fetched successfully",
        {"total": total, **page_meta(total, params), "logs": [action_log_out(r) for r in rows]},
    )


@router.get("/action-types")
def get_action_types(p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return envelope("Action types fetched successfully", action_types(db))
