# backend/app/routers/admins.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin, require_super_admin
from ..db import get_db
from ..domain.action_log import log_admin_action
from ..domain.pagination import page_meta, page_params
from ..responses import envelope, export_response
from ..schemas import AdminSignupIn, AdminUpdateIn, InspectorAdminUpdateIn, SubAdminIn
from ..serializers import expertise_out, user_out
from ..services import admin_service, inspector_service
from ..services.ownership import must_get_inspector
from ..services.user_service import issue_token

router = APIRouter(prefix="/admins", tags=["admins"])


@router.post("/signup", status_code=201)
def signup(payload: AdminSignupIn, db: Session = Depends(get_db)):
    user = admin_service.signup_admin(db, payload)
    return envelope("Admin created successfully", issue_token(user))


@router.post("/addSubAdmin", status_code=201)
def add_sub_admin(payload: SubAdminIn, p: Principal = Depends(require_super_admin), db: Session = Depends(get_db)):
    user = admin_service.add_sub_admin(db, payload)
    return envelope("Sub-admin created successfully", admin_service.admin_out(user))


@router.get("/getAdmins")
def get_admins(
    page: int = Query(default=1),
    limit: int = Query(default=10),
    search: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    params = page_params(page, limit)
    rows, total = admin_service.list_sub_admins(
        db, params, search=search, status=status, sort_by=sort_by, sort_order=sort_order
    )
    return envelope(
        "Admins fetched successfully",
        {"totalAdmins": total, **page_meta(total, params), "admins": [admin_service.admin_out(u) for u in rows]},
    )


@router.get("/getAdmin/{admin_id}")
def get_admin(admin_id: str, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return envelope("Admin fetched successfully", admin_service.admin_out(admin_service.must_get_sub_admin(db, admin_id)))


@router.patch("/update/{admin_id}")
def update_admin(
    admin_id: str,
    payload: AdminUpdateIn,
    p: Principal = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    user = admin_service.update_sub_admin(db, admin_id, payload)
    return envelope("Admin updated successfully", admin_service.admin_out(user))


@router.delete("/delete/{admin_id}")
def delete_admin(admin_id: str, p: Principal = Depends(require_super_admin), db: Session = Depends(get_db)):
    admin_service.delete_sub_admin(db, admin_id)
    return envelope("Admin deleted successfully")


@router.get("/dashboard")
def dashboard(p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return envelope("Dashboard data fetched successfully", admin_service.dashboard(db))


@router.get("/export-dashboard")
def export_dashboard(
    format: Optional[str] = Query(default=None),
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return export_response(
        format,
        name="dashboard",
        title="Dashboard Summary",
        columns=list(admin_service.DASHBOARD_KEY_MAP.items()),
        rows=[admin_service.dashboard_totals(db)],
    )


@router.put("/update-inspector/{inspector_id}")
def update_inspector(
    inspector_id: str,
    payload: InspectorAdminUpdateIn,
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = inspector_service.update_inspector(db, must_get_inspector(db, inspector_id=inspector_id), payload)
    log_admin_action(
        db,
        p.user_id,
        "admin_inspector_updated",
        f"Updated inspector {user.email}",
        metadata={"inspectorId": user.id, "fields": sorted(payload.model_dump(exclude_unset=True))},
    )
    out = user_out(user)
    out["expertises"] = [expertise_out(ue.expertise) for ue in user.expertises]
    return envelope("Inspector updated successfully", out)
